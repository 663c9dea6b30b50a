"""Tests for client program resolution (top-level entry point)."""

import copy

import pytest

from content_resolver.library.errors import InvalidProgramTemplateError, LibraryModuleNotFoundError
from content_resolver.library.program_resolver import resolve_client_program, resolve_client_program_report
from content_resolver.store import InMemoryDocumentStore


async def _resolve(store: InMemoryDocumentStore, template: dict, **kwargs) -> dict:
    return await resolve_client_program(store, "user-1", "prog-1", template, **kwargs)


class TestResolveClientProgram:
    """Tests for the full library -> program -> client resolution."""

    @pytest.mark.asyncio
    async def test_resolves_library_backed_and_standalone_modules(self, store, program_template) -> None:
        program = await _resolve(store, program_template)

        assert program["title"] == "Twelve Week Strength"
        assert program["creator_id"] == "creator-1"
        assert [module["id"] for module in program["modules"]] == ["pm-1", "pm-2"]

        strength = program["modules"][0]
        assert strength["title"] == "Strength Block"
        assert strength["libraryModuleRef"] == "lm-1"
        assert [session["id"] for session in strength["sessions"]] == ["ls-1", "ls-2"]
        assert [exercise["id"] for exercise in strength["sessions"][0]["exercises"]] == ["ex-1", "ex-2"]

        mobility = program["modules"][1]
        assert mobility == program_template["modules"][1]

    @pytest.mark.asyncio
    async def test_template_is_not_modified(self, store, program_template) -> None:
        original = copy.deepcopy(program_template)
        await _resolve(store, program_template)
        assert program_template == original

    @pytest.mark.asyncio
    async def test_resolution_is_idempotent(self, store, program_template, put_client_overrides) -> None:
        put_client_overrides({"pm-1": {"title": "Mine", "sessions": {"ls-1": {"title": "My Push"}}}})

        first = await _resolve(store, program_template)
        second = await _resolve(store, program_template)

        assert first == second

    @pytest.mark.asyncio
    async def test_invalid_template_is_rejected(self, store) -> None:
        with pytest.raises(InvalidProgramTemplateError):
            await _resolve(store, {"id": "prog-1", "creator_id": "creator-1"})


class TestClientOverrides:
    """Tests for client-level overrides layered on library content."""

    @pytest.mark.asyncio
    async def test_client_overrides_modify_library_backed_module(self, store, program_template, put_client_overrides) -> None:
        put_client_overrides(
            {
                "pm-1": {
                    "title": "My Strength",
                    "sessions": {
                        "ls-1": {
                            "title": "My Push",
                            "exercises": {
                                "ex-1": {"sets": {"set-1": {"weight": 65}}},
                                "ex-9": {"name": "Ghost Lift"},
                            },
                        },
                        "ls-9": {"title": "Ghost Session"},
                    },
                }
            }
        )

        program = await _resolve(store, program_template)

        strength = program["modules"][0]
        assert strength["title"] == "My Strength"
        assert [session["id"] for session in strength["sessions"]] == ["ls-1", "ls-2"]
        push = strength["sessions"][0]
        assert push["title"] == "My Push"
        assert [exercise["id"] for exercise in push["exercises"]] == ["ex-1", "ex-2"]
        assert push["exercises"][0]["sets"][0]["weight"] == 65
        assert push["exercises"][0]["sets"][1]["weight"] == 70

    @pytest.mark.asyncio
    async def test_program_module_title_beats_library_and_empty_client(self, store, program_template, put_client_overrides) -> None:
        program_template["modules"][0]["title"] = "Program Strength"
        put_client_overrides({"pm-1": {"title": ""}})

        program = await _resolve(store, program_template)

        assert program["modules"][0]["title"] == "Program Strength"

    @pytest.mark.asyncio
    async def test_program_sessions_merge_into_library_sessions(self, store, program_template) -> None:
        program_template["modules"][0]["sessions"] = [
            {"id": "ls-1", "title": "Push (program)"},
            {"id": "ps-extra", "title": "Extra Session", "exercises": []},
        ]

        program = await _resolve(store, program_template)

        sessions = program["modules"][0]["sessions"]
        assert [session["id"] for session in sessions] == ["ls-1", "ls-2", "ps-extra"]
        assert sessions[0]["title"] == "Push (program)"
        assert sessions[0]["exercises"]

    @pytest.mark.asyncio
    async def test_standalone_module_client_override(self, store, program_template, put_client_overrides) -> None:
        put_client_overrides(
            {"pm-2": {"sessions": {"ps-1": {"title": "My Hip Flow"}, "ps-9": {"title": "Ghost"}}}}
        )

        program = await _resolve(store, program_template)

        mobility = program["modules"][1]
        template_sessions = program_template["modules"][1]["sessions"]
        assert [session["id"] for session in mobility["sessions"]] == ["ps-1", "ps-2"]
        assert mobility["sessions"][0] == {**template_sessions[0], "title": "My Hip Flow"}
        assert mobility["sessions"][1] == template_sessions[1]
        assert mobility["title"] == "Mobility"

    @pytest.mark.asyncio
    async def test_missing_client_document_is_not_an_error(self, store, program_template) -> None:
        report = await resolve_client_program_report(store, "user-1", "prog-1", program_template)
        assert report.status == "resolved"
        assert report.gaps == []

    @pytest.mark.asyncio
    async def test_failed_client_document_fetch_degrades(self, store, program_template, put_client_overrides) -> None:
        put_client_overrides({"pm-1": {"title": "Mine"}})
        store.fail_on("client_programs/user-1_prog-1")

        report = await resolve_client_program_report(store, "user-1", "prog-1", program_template)

        assert report.status == "resolved_with_gaps"
        assert [gap.kind for gap in report.gaps] == ["client_overrides"]
        assert report.program["modules"][0]["title"] == "Strength Block"


class TestStandaloneSessions:
    """Tests for standalone modules that reference or store their own sessions."""

    @pytest.mark.asyncio
    async def test_library_backed_session_in_standalone_module(self, store, program_template, put_client_overrides) -> None:
        program_template["modules"].append(
            {
                "id": "pm-3",
                "title": "Finisher",
                "sessions": [{"id": "ps-3", "librarySessionRef": "ls-3", "title": "Finisher Conditioning"}],
            }
        )
        put_client_overrides({"pm-3": {"sessions": {"ps-3": {"exercises": {"ex-4": {"notes": "Easy pace"}}}}}})

        program = await _resolve(store, program_template)

        session = program["modules"][2]["sessions"][0]
        assert session["id"] == "ps-3"
        assert session["librarySessionRef"] == "ls-3"
        assert session["title"] == "Finisher Conditioning"
        assert session["exercises"] == [{"id": "ex-4", "name": "Rower", "order": 0, "sets": [], "notes": "Easy pace"}]

    @pytest.mark.asyncio
    async def test_missing_library_session_in_standalone_module_degrades(self, store, program_template) -> None:
        program_template["modules"].append(
            {"id": "pm-3", "title": "Finisher", "sessions": [{"id": "ps-3", "librarySessionRef": "ls-gone", "title": "Gone"}]}
        )

        report = await resolve_client_program_report(store, "user-1", "prog-1", program_template)

        assert report.status == "resolved_with_gaps"
        assert report.program["modules"][2]["sessions"] == [
            {"id": "ps-3", "librarySessionRef": "ls-gone", "title": "Gone", "exercises": []}
        ]
        assert [gap.kind for gap in report.gaps] == ["session"]

    @pytest.mark.asyncio
    async def test_standalone_session_content_is_loaded_from_program(self, store, program_template) -> None:
        store.put("courses/prog-1/modules/pm-4/sessions/ps-4/exercises/cx-1", {"name": "Plank", "order": 0})
        store.put("courses/prog-1/modules/pm-4/sessions/ps-4/exercises/cx-1/sets/cs-1", {"order": 0, "seconds": 60})
        program_template["modules"].append({"id": "pm-4", "title": "Core", "sessions": [{"id": "ps-4", "title": "Core"}]})

        program = await _resolve(store, program_template)

        assert program["modules"][2]["sessions"][0]["exercises"] == [
            {"id": "cx-1", "name": "Plank", "order": 0, "sets": [{"id": "cs-1", "order": 0, "seconds": 60}]}
        ]

    @pytest.mark.asyncio
    async def test_standalone_module_sessions_are_loaded_from_program(self, store, program_template) -> None:
        store.put("courses/prog-1/modules/pm-5/sessions/ps-6", {"title": "Cool Down", "order": 1})
        store.put("courses/prog-1/modules/pm-5/sessions/ps-5", {"title": "Stretch", "order": 0})
        program_template["modules"].append({"id": "pm-5", "title": "Recovery"})

        program = await _resolve(store, program_template)

        sessions = program["modules"][2]["sessions"]
        assert [session["id"] for session in sessions] == ["ps-5", "ps-6"]
        assert sessions[0]["exercises"] == []


class TestDegradedModes:
    """Tests for missing creator ids, dangling refs and fault isolation."""

    @pytest.mark.asyncio
    async def test_without_creator_id_only_root_overrides_apply(self, store, program_template, put_client_overrides) -> None:
        del program_template["creator_id"]
        put_client_overrides({"pm-1": {"title": "Ignored"}}, title="Client Program", image_url="")

        program = await _resolve(store, program_template)

        assert program["title"] == "Client Program"
        assert program["image_url"] == "https://cdn.example.com/program.png"
        assert program["modules"] == program_template["modules"]
        assert not any(path.startswith("creator_libraries") for path in store.reads)

    @pytest.mark.asyncio
    async def test_dangling_module_ref_fails_resolution(self, store, program_template) -> None:
        program_template["modules"][0]["libraryModuleRef"] = "lm-missing"

        with pytest.raises(LibraryModuleNotFoundError):
            await _resolve(store, program_template)

        report = await resolve_client_program_report(store, "user-1", "prog-1", program_template)
        assert report.status == "failed"
        assert report.program is None
        assert "lm-missing" in report.error

    @pytest.mark.asyncio
    async def test_lenient_mode_empties_failing_module(self, store, program_template) -> None:
        program_template["modules"][0]["libraryModuleRef"] = "lm-missing"

        report = await resolve_client_program_report(store, "user-1", "prog-1", program_template, strict=False)

        assert report.status == "resolved_with_gaps"
        assert report.program["modules"][0]["sessions"] == []
        assert report.program["modules"][1]["title"] == "Mobility"
        assert [gap.kind for gap in report.gaps] == ["module"]

    @pytest.mark.asyncio
    async def test_missing_sets_do_not_abort_siblings(self, store, program_template) -> None:
        store.fail_on("creator_libraries/creator-1/sessions/ls-1/exercises/ex-1/sets")

        report = await resolve_client_program_report(store, "user-1", "prog-1", program_template)

        push, pull = report.program["modules"][0]["sessions"]
        assert push["exercises"][0]["sets"] == []
        assert len(push["exercises"][1]["sets"]) == 1
        assert len(pull["exercises"][0]["sets"]) == 1
        assert report.status == "resolved_with_gaps"
        assert [gap.kind for gap in report.gaps] == ["sets"]

    @pytest.mark.asyncio
    async def test_mixed_program_session_order_types(self, store, program_template) -> None:
        store.put("courses/prog-1/modules/pm-5/sessions/ps-6", {"title": "Cool Down", "order": "2"})
        store.put("courses/prog-1/modules/pm-5/sessions/ps-5", {"title": "Stretch", "order": 1})
        program_template["modules"].append({"id": "pm-5", "title": "Recovery"})

        report = await resolve_client_program_report(store, "user-1", "prog-1", program_template)

        assert report.status == "resolved"
        assert [session["id"] for session in report.program["modules"][2]["sessions"]] == ["ps-5", "ps-6"]

    @pytest.mark.asyncio
    async def test_resolved_program_does_not_share_template_lists(self, store, program_template) -> None:
        original = copy.deepcopy(program_template)

        program = await _resolve(store, program_template)
        hip_flow = program["modules"][1]["sessions"][0]
        hip_flow["exercises"].append({"id": "mx-2", "name": "Lunges"})
        hip_flow["exercises"][0]["sets"][0]["reps"] = 99
        program["modules"][1]["sessions"].pop()

        assert program_template == original
