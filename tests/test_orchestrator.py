"""Tests for the orchestrator's user-level operations."""

import json

import pytest

from qa_agent.ai.client import GenerationResult
from qa_agent.ai.errors import AIServiceError, ErrorKind
from qa_agent.models.app_state import SuggestedModule
from qa_agent.models.config import LOCAL_STORAGE_KEY
from qa_agent.models.test_case import GeneratedTestCase
from qa_agent.models.test_case import TestStatus as Status
from qa_agent.models.test_case import TestType as Kind
from qa_agent.orchestrator import Orchestrator, discovery_key
from qa_agent.planner.generator import BatchAbortedError
from qa_agent.store.backends import InMemoryStorage


def _json_result(payload):
    return GenerationResult(text=json.dumps(payload), finish_reason="STOP")


@pytest.fixture
def ready(orchestrator):
    """Orchestrator with setup filled in and two modules."""
    orchestrator.update_setup(app_url="https://shop.example.com", app_description="An online shop")
    orchestrator.add_manual_module("User Login", "Sign in")
    orchestrator.add_manual_module("Cart", "")
    return orchestrator


class TestSetupAndPersistence:
    """Tests for setup updates and state persistence."""

    def test_update_setup_persists(self, orchestrator, storage):
        orchestrator.update_setup(app_url="https://a.test")
        saved = json.loads(storage.items[LOCAL_STORAGE_KEY])
        assert saved["setupInfo"]["appUrl"] == "https://a.test"

    def test_state_reloaded(self, ready, config, storage, mock_ai_client):
        again = Orchestrator(config, backend=storage, ai_client=mock_ai_client)
        assert [m.name for m in again.state.discovered_modules] == ["User Login", "Cart"]

    def test_reset(self, ready):
        ready.reset()
        assert ready.state.discovered_modules == []
        assert ready.state.setup_info.app_url == ""

    def test_works_without_api_key(self, config, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        orchestrator = Orchestrator(config, backend=InMemoryStorage())
        assert orchestrator.ai_client is None
        orchestrator.add_manual_module("Cart")
        assert orchestrator.available_modules() == ["Cart"]


class TestDiscovery:
    """Tests for module discovery and its cache."""

    @pytest.mark.asyncio
    async def test_requires_setup(self, orchestrator, mock_ai_client):
        with pytest.raises(AIServiceError) as exc_info:
            await orchestrator.discover_modules()
        assert exc_info.value.kind == ErrorKind.MISSING_PRECONDITION
        mock_ai_client.generate_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cached_until_inputs_change(self, ready, mock_ai_client):
        mock_ai_client.generate_content.return_value = _json_result([{"name": "Search", "description": "Find"}])

        modules, cached = await ready.discover_modules()
        assert [m.name for m in modules] == ["Search"]
        assert not cached

        modules, cached = await ready.discover_modules()
        assert cached
        assert mock_ai_client.generate_content.await_count == 1

        ready.update_setup(app_description="A different shop")
        _, cached = await ready.discover_modules()
        assert not cached
        assert mock_ai_client.generate_content.await_count == 2

    @pytest.mark.asyncio
    async def test_refresh_bypasses_cache(self, ready, mock_ai_client):
        mock_ai_client.generate_content.return_value = _json_result([])
        await ready.discover_modules()
        _, cached = await ready.discover_modules(force_refresh=True)
        assert not cached
        assert mock_ai_client.generate_content.await_count == 2

    def test_discovery_key(self):
        assert discovery_key("u", "d") == '{"url":"u","desc":"d"}'

    def test_add_modules_skips_existing(self, ready):
        added = ready.add_modules([SuggestedModule(name="Cart"), SuggestedModule(name="Search")])
        assert [m.name for m in added] == ["Search"]
        assert [m.name for m in ready.state.discovered_modules] == ["User Login", "Cart", "Search"]

    def test_add_manual_module(self, ready):
        assert ready.add_manual_module("  Cart ") is None
        with pytest.raises(ValueError):
            ready.add_manual_module("   ")


class TestAnalyze:
    """Tests for module analysis caching."""

    @pytest.mark.asyncio
    async def test_insights_computed_once(self, ready, mock_ai_client):
        mock_ai_client.generate_content.return_value = GenerationResult(text="Watch the totals")
        assert await ready.analyze_module("Cart") == "Watch the totals"
        assert await ready.analyze_module("Cart") == "Watch the totals"
        assert mock_ai_client.generate_content.await_count == 1

    @pytest.mark.asyncio
    async def test_refresh_replaces_insights(self, ready, mock_ai_client):
        mock_ai_client.generate_content.side_effect = [
            GenerationResult(text="old"), GenerationResult(text="new"),
        ]
        await ready.analyze_module("Cart")
        assert await ready.analyze_module("Cart", refresh=True) == "new"
        assert ready.state.find_module("Cart").insights == "new"

    @pytest.mark.asyncio
    async def test_unknown_module(self, ready):
        with pytest.raises(ValueError, match="Unknown module"):
            await ready.analyze_module("Nope")


class TestGenerate:
    """Tests for batch test generation."""

    @pytest.mark.asyncio
    async def test_generates_and_commits(self, ready, mock_ai_client):
        mock_ai_client.generate_content.side_effect = [
            _json_result([{"title": "ok", "steps": ["s"], "type": "Negative"}]),
            _json_result([{"title": "add", "steps": ["s"], "type": "Negative"}]),
        ]
        created = await ready.generate_tests(["User Login", "Cart"], [Kind.NEGATIVE], 1)
        assert [tc.id for tc in created] == ["UL_001", "CART_001"]
        assert [tc.id for tc in ready.state.test_cases] == ["UL_001", "CART_001"]
        assert all(tc.type == Kind.NEGATIVE for tc in created)

    @pytest.mark.asyncio
    async def test_partial_results_kept(self, ready, mock_ai_client):
        mock_ai_client.generate_content.side_effect = [
            _json_result([{"title": "ok", "steps": ["s"]}]),
            GenerationResult(text="not json"),
        ]
        with pytest.raises(BatchAbortedError):
            await ready.generate_tests(["User Login", "Cart"], tests_per_module=1)
        assert [tc.id for tc in ready.state.test_cases] == ["UL_001"]

    @pytest.mark.asyncio
    async def test_module_description_falls_back_to_app(self, ready, mock_ai_client):
        mock_ai_client.generate_content.return_value = _json_result([])
        await ready.generate_tests(["Cart"], tests_per_module=1)
        prompt = mock_ai_client.generate_content.call_args.args[0]
        assert 'Module Description: "An online shop"' in prompt

    @pytest.mark.asyncio
    async def test_count_bounds(self, ready):
        with pytest.raises(ValueError):
            await ready.generate_tests(["Cart"], tests_per_module=0)
        with pytest.raises(ValueError):
            await ready.generate_tests(["Cart"], tests_per_module=51)
        with pytest.raises(ValueError):
            await ready.generate_tests([])


class TestCaseManagement:
    """Tests for manual CRUD, recording and auto-execution."""

    def test_add_and_record(self, ready):
        tc = ready.add_test_case(GeneratedTestCase(title="Manual", steps=["s"], module="Cart"))
        assert tc.id == "CART_001"
        recorded = ready.record_result(tc.id, Status.FAILED, "Crashed")
        assert recorded.status == Status.FAILED
        assert ready.get_test_case(tc.id).actual_results == "Crashed"

    def test_modules_sharing_an_abbreviation_keep_separate_cases(self, ready):
        login = ready.add_test_case(GeneratedTestCase(title="a", steps=["s"], module="User Login"))
        logout = ready.add_test_case(GeneratedTestCase(title="b", steps=["s"], module="User Logout"))
        assert (login.id, logout.id) == ("UL_001", "UL_002")

        ready.record_result(login.id, Status.FAILED, "Broken")

        assert [(tc.id, tc.module, tc.status) for tc in ready.state.test_cases] == [
            ("UL_001", "User Login", Status.FAILED),
            ("UL_002", "User Logout", Status.PENDING),
        ]
        ready.delete_test_case(login.id)
        assert [tc.id for tc in ready.state.test_cases] == ["UL_002"]

    def test_add_requires_module(self, ready):
        with pytest.raises(ValueError):
            ready.add_test_case(GeneratedTestCase(title="No module"))

    def test_update_revalidates(self, ready):
        tc = ready.add_test_case(GeneratedTestCase(title="Manual", module="Cart"))
        updated = ready.update_test_case(tc.id, title="Renamed", type="Security")
        assert updated.title == "Renamed"
        assert updated.type == Kind.SECURITY

    def test_delete(self, ready):
        tc = ready.add_test_case(GeneratedTestCase(title="Manual", module="Cart"))
        ready.delete_test_case(tc.id)
        assert ready.state.test_cases == []
        with pytest.raises(ValueError):
            ready.delete_test_case(tc.id)

    @pytest.mark.asyncio
    async def test_auto_execute_filters(self, ready, mock_ai_client):
        ready.add_test_case(GeneratedTestCase(title="a", module="Cart", type="Security"))
        ready.add_test_case(GeneratedTestCase(title="b", module="Cart"))
        ready.add_test_case(GeneratedTestCase(title="c", module="User Login"))
        mock_ai_client.generate_content.return_value = _json_result(
            {"status": "Failed", "actualResults": "Broken"}
        )

        summary = await ready.auto_execute(module="Cart", test_type=Kind.FUNCTIONAL)

        assert [tc.id for tc in summary.executed] == ["CART_002"]
        assert summary.failed_count == 1
        assert ready.get_test_case("CART_002").status == Status.FAILED
        assert ready.get_test_case("CART_001").status == Status.PENDING

    @pytest.mark.asyncio
    async def test_auto_execute_nothing_pending(self, ready):
        with pytest.raises(ValueError, match="No pending test cases"):
            await ready.auto_execute()

    @pytest.mark.asyncio
    async def test_auto_execute_needs_description(self, orchestrator):
        with pytest.raises(AIServiceError) as exc_info:
            await orchestrator.auto_execute()
        assert exc_info.value.kind == ErrorKind.MISSING_PRECONDITION


class TestCsvAndDashboard:
    """Tests for CSV import/export through the orchestrator."""

    def test_import_assigns_ids(self, ready):
        text = (
            "Title,Description,Steps (Semicolon Separated),Expected Results,Type,Module\n"
            "a,,s1;s2,ok,Functional,Cart\n"
            "b,,s1,ok,Security,Cart\n"
        )
        imported = ready.import_csv(text)
        assert [tc.id for tc in imported] == ["CART_001", "CART_002"]
        assert ready.export_results_csv().count("\n") == 2
        assert ready.export_bugs_csv().splitlines()[0].startswith("Bug ID")

    def test_dashboard(self, ready):
        summary = ready.dashboard()
        assert summary.total_modules == 2
        assert summary.total_test_cases == 0

    def test_export_filters(self, ready):
        ready.add_test_case(GeneratedTestCase(title="a", steps=["s"], module="Cart", type="Security"))
        ready.add_test_case(GeneratedTestCase(title="b", steps=["s"], module="Cart"))
        ready.add_test_case(GeneratedTestCase(title="c", steps=["s"], module="User Login"))
        ready.record_result("CART_002", Status.FAILED, "Broken")

        def ids(text):
            return [line.split(",")[0] for line in text.splitlines()[1:]]

        assert ids(ready.export_results_csv(module="Cart")) == ["CART_001", "CART_002"]
        assert ids(ready.export_results_csv(test_type=Kind.SECURITY)) == ["CART_001"]
        assert ids(ready.export_results_csv(status=Status.PENDING)) == ["CART_001", "UL_001"]
        assert ready.export_results_csv(module="Cart", status=Status.BLOCKED) == ""
        assert ids(ready.export_bugs_csv(module="Cart")) == ["CART_002"]
        assert ids(ready.export_bugs_csv(module="User Login")) == []
