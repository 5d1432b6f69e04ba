"""
Tests for the run aggregator and the two reporter variants.
"""

import json
import logging
from unittest.mock import patch

import pytest

from rbp_reporter.core.types import (
    Annotation,
    Attachment,
    ProjectConfig,
    RunConfig,
    RunResult,
    TestError,
)
from rbp_reporter.error_handling import RenderError
from rbp_reporter.reporter import (
    AggregatorState,
    SpecsReporter,
    StepReporter,
    create_reporter,
    grouping_key,
    is_flaky,
)
from conftest import make_case, make_result


def assert_counters_consistent(summary):
    assert summary.total == summary.total_passed + summary.total_failed + summary.total_skipped
    assert summary.total_flaky <= summary.total_passed


@pytest.fixture
def specs(settings, tmp_path):
    reporter = SpecsReporter(settings=settings)
    reporter.on_begin(RunConfig(root_dir=str(tmp_path / "tests"), projects=[ProjectConfig(name="chromium")]))
    return reporter


@pytest.fixture
def steps(settings, tmp_path):
    reporter = StepReporter(settings=settings)
    reporter.on_begin(RunConfig(root_dir=str(tmp_path / "tests")))
    return reporter


class TestGroupingKey:
    """Tests for grouping_key."""

    def test_relative_to_test_dir(self, tmp_path):
        key = grouping_key(str(tmp_path / "tests" / "e2e" / "booking.py"), tmp_path / "tests")
        assert key == "e2e/booking.py"

    def test_separator_independent(self):
        assert grouping_key("tests\\e2e\\booking.py", "tests") == "e2e/booking.py"
        assert grouping_key("tests/e2e/booking.py", "tests") == "e2e/booking.py"

    def test_outside_test_dir(self):
        assert grouping_key("other/test_x.py", "tests") == "../other/test_x.py"


class TestIsFlaky:
    def test_single_attempt(self):
        result = make_result("passed")
        assert is_flaky(make_case(results=[result]), result) is False

    def test_passed_after_retry(self):
        final = make_result("passed", retry=1)
        case = make_case(results=[make_result("failed"), final])
        assert is_flaky(case, final) is True

    def test_failed_after_retry(self):
        final = make_result("failed", retry=1)
        case = make_case(results=[make_result("failed"), final])
        assert is_flaky(case, final) is False


class TestEndToEnd:
    """One passed and one failed test in the same file."""

    def test_scenario(self, specs, tmp_path):
        test_file = str(tmp_path / "tests" / "e2e" / "booking.py")
        result_a = make_result("passed", duration=2500)
        result_b = make_result("failed", duration=1200, errors=["Error: timeout"])

        record_a = specs.on_test_end(
            make_case("Test A", file=test_file, tags=["@smoke"], results=[result_a]), result_a
        )
        record_b = specs.on_test_end(
            make_case("Test B", file=test_file, results=[result_b]), result_b
        )
        specs.on_end(RunResult(status="failed", duration=4000))

        summary = specs.summary
        assert (record_a.num, record_b.num) == (1, 2)
        assert [r.title for r in summary.grouped_results["e2e/booking.py"]] == ["Test A", "Test B"]
        assert summary.total_passed == 1
        assert summary.total_failed == 1
        assert summary.total == 2
        assert_counters_consistent(summary)

        assert record_a.prompts is None
        assert "prompts" not in record_a.model_dump(exclude_none=True)
        assert "Error: timeout" in record_b.prompts.quick

        assert record_a.browser == "chromium"
        assert record_a.duration == "2s 500ms"
        assert record_a.tags == ["smoke"]
        assert record_a.tag_details[0].category == "priority"

        assert summary.duration == "4s 0ms"
        assert summary.status == "failed"
        assert summary.status_icon == "cancel"
        assert specs.state is AggregatorState.FINALIZED

        root = tmp_path / "specs-report"
        assert (root / "1" / "index.html").exists()
        assert (root / "2" / "index.html").exists()
        assert (root / "index.html").exists()
        assert "Test B" in (root / "index.html").read_text()


class TestRecords:
    """Tests for record construction."""

    def test_annotations(self, steps):
        case = make_case(annotations=[
            Annotation(type="Description", description="Books a room"),
            Annotation(type="Pre Condition", description="Room exists"),
            Annotation(type="Step", description="Open page"),
            Annotation(type="A11y", description="No violations"),
            Annotation(type="Go To", description="/booking"),
            Annotation(type="Assert", description="Confirmation shown"),
            Annotation(type="Mock", description=None),
            Annotation(type="Post Condition", description="Booking deleted"),
        ])
        record = steps.on_test_end(case, make_result())

        assert record.description == "Books a room"
        assert record.pre_conditions == ["Room exists"]
        assert record.steps == ["Open page", "/booking", "Confirmation shown", "No steps"]
        assert record.post_conditions == ["Booking deleted"]

    def test_placeholders(self, steps):
        record = steps.on_test_end(make_case(project_name=None), make_result())

        assert record.description == "No Description"
        assert record.steps == ["No steps"]
        assert record.pre_conditions == ["No pre conditions"]
        assert record.post_conditions == ["No post conditions"]
        assert record.browser == "No browser"

    def test_project_name_from_settings(self, settings, tmp_path):
        settings.project_name = "rbp-webkit"
        reporter = StepReporter(settings=settings)
        reporter.on_begin()

        record = reporter.on_test_end(make_case(project_name=None), make_result())
        assert record.browser == "rbp-webkit"

    def test_errors_are_html(self, steps):
        result = make_result("failed", errors=["\u001b[31mError:\u001b[0m\nexpected <b>"])
        record = steps.on_test_end(make_case(), result)

        assert record.errors == ['<span style="color: red;">Error:</span><br>expected &lt;b&gt;']

    def test_missing_error_message(self, steps):
        result = make_result("failed")
        result.errors.append(TestError(message=None))
        record = steps.on_test_end(make_case(), result)

        assert record.errors == ["No errors"]

    def test_sequence_numbers(self, steps):
        nums = [steps.on_test_end(make_case(f"T{i}"), make_result()).num for i in range(5)]
        assert nums == [1, 2, 3, 4, 5]

    def test_grouping_by_file(self, steps, tmp_path):
        root = tmp_path / "tests"
        steps.on_test_end(make_case("A", file=str(root / "a.py")), make_result())
        steps.on_test_end(make_case("B", file=str(root / "b.py")), make_result())
        steps.on_test_end(make_case("C", file=str(root / "a.py")), make_result())

        grouped = steps.summary.grouped_results
        assert list(grouped) == ["a.py", "b.py"]
        assert [r.title for r in grouped["a.py"]] == ["A", "C"]


class TestCounters:
    """Tests for the summary counters."""

    def test_all_statuses(self, steps):
        for status in ("passed", "failed", "skipped", "timedOut", "interrupted", "passed"):
            steps.on_test_end(make_case(), make_result(status))

        summary = steps.summary
        assert summary.total == 6
        assert summary.total_passed == 2
        assert summary.total_failed == 3
        assert summary.total_skipped == 1
        assert_counters_consistent(summary)

    def test_flaky_is_an_overlay(self, steps):
        final = make_result("passed", retry=1)
        steps.on_test_end(make_case(results=[make_result("failed"), final]), final)

        summary = steps.summary
        assert summary.total == 1
        assert summary.total_passed == 1
        assert summary.total_flaky == 1
        assert_counters_consistent(summary)

    def test_failed_after_retries_is_not_flaky(self, steps):
        final = make_result("failed", retry=2)
        steps.on_test_end(
            make_case(results=[make_result("failed"), make_result("failed"), final]), final
        )

        assert steps.summary.total_flaky == 0
        assert steps.summary.total_failed == 1


class TestStepReporter:
    """Inline attachment handling and the summary page name."""

    def test_copies_attachments_inline(self, steps, tmp_path, write_file):
        result = make_result(attachments=[
            Attachment(name="screenshot", path=write_file("shot.png")),
            Attachment(name="video", path=write_file("rec.webm")),
            Attachment(name="trace", path=write_file("trace.zip")),
            Attachment(name="allure-results", path=write_file("allure.json")),
        ])
        record = steps.on_test_end(make_case(), result)
        folder = tmp_path / "steps-report" / "1"

        assert record.screenshot_paths == ["shot.png"]
        assert record.video_path == "rec.webm"
        assert [(a.name, a.path) for a in record.attachments] == [("trace", "trace.zip")]
        assert (folder / "shot.png").exists()
        assert (folder / "trace.zip").exists()
        assert not (folder / "allure.json").exists()

    def test_no_prompts(self, steps):
        record = steps.on_test_end(make_case(), make_result("failed", errors=["boom"]))
        assert record.prompts is None

    def test_summary_name(self, steps, tmp_path):
        steps.on_test_end(make_case(), make_result())
        path = steps.on_end(RunResult(status="passed", duration=10))

        assert path == tmp_path / "steps-report" / "summary.html"
        assert 'href="../summary.html"' in (tmp_path / "steps-report" / "1" / "index.html").read_text()


class TestSpecsReporter:
    """Deferred relocation."""

    def test_relocation_is_deferred(self, specs, tmp_path, write_file):
        result = make_result("failed", errors=["boom"], attachments=[
            Attachment(name="screenshot", path=write_file("shot-1.png")),
            Attachment(name="screenshot", path=write_file("shot-2.png")),
            Attachment(name="video", path=write_file("rec.webm")),
            Attachment(name="trace", path=write_file("trace.zip")),
        ])
        record = specs.on_test_end(make_case(), result)
        folder = tmp_path / "specs-report" / "1"
        page = folder / "index.html"

        assert record.screenshot_paths == ["screenshot", "screenshot"]
        assert record.video_path == "video"
        assert record.attachments[0].path == "trace"
        assert not (folder / "rec.webm").exists()
        assert 'src="video"' in page.read_text()

        specs.on_end(RunResult(status="failed", duration=10))

        content = page.read_text()
        assert (folder / "rec.webm").exists()
        assert 'src="shot-1.png"' in content and 'src="shot-2.png"' in content
        assert 'src="rec.webm"' in content and 'href="rec.webm"' in content
        assert 'href="trace.zip"' in content
        assert 'src="video"' not in content

        assert record.screenshot_paths == ["shot-1.png", "shot-2.png"]
        assert record.video_path == "rec.webm"
        assert record.attachments[0].path == "trace.zip"

    def test_attachment_written_after_test_end(self, specs, tmp_path):
        video = tmp_path / "late" / "video.webm"
        result = make_result(attachments=[Attachment(name="video", path=str(video))])
        specs.on_test_end(make_case(), result)

        # The automation library flushes the file only at the end of the run
        video.parent.mkdir()
        video.write_text("frames")
        specs.on_end(RunResult(status="passed", duration=10))

        assert (tmp_path / "specs-report" / "1" / "video.webm").exists()

    def test_prompts_leave_out_empty_sections(self, specs):
        record = specs.on_test_end(make_case(), make_result("failed", errors=["Error: timeout"]))

        assert record.steps == ["No steps"]
        for prompt in (record.prompts.full, record.prompts.quick, record.prompts.debug):
            assert "## Test Steps" not in prompt
            assert "No steps" not in prompt
            assert "No pre conditions" not in prompt
            assert "No post conditions" not in prompt

    def test_prompts_keep_annotated_steps(self, specs):
        case = make_case(annotations=[Annotation(type="Step", description="Open the booking page")])
        record = specs.on_test_end(case, make_result("failed", errors=["boom"]))

        assert "## Test Steps\n1. Open the booking page" in record.prompts.debug
        assert "## Pre-conditions" not in record.prompts.full


class TestLifecycle:
    """State machine transitions."""

    def test_initial_state(self, settings):
        assert StepReporter(settings=settings).state is AggregatorState.UNINITIALIZED

    def test_begin_collects_environment(self, specs):
        assert specs.state is AggregatorState.RUNNING
        assert specs.summary.environment.browsers == ["Chromium"]

    def test_events_after_end_are_ignored(self, steps, caplog):
        steps.on_end(RunResult(status="passed", duration=0))

        with caplog.at_level(logging.WARNING):
            assert steps.on_test_end(make_case(), make_result()) is None
            assert steps.on_end(RunResult(status="passed", duration=0)) is None

        assert steps.summary.total == 0
        assert "after run end" in caplog.text

    def test_implicit_begin(self, settings):
        reporter = StepReporter(settings=settings)
        record = reporter.on_test_end(make_case(), make_result())

        assert record.num == 1
        assert reporter.state is AggregatorState.RUNNING

    def test_second_begin_is_ignored(self, steps):
        steps.on_test_end(make_case(), make_result())
        steps.on_begin(RunConfig())

        assert steps.summary.total == 1


class TestErrorIsolation:
    """Reporting failures never reach the runner."""

    def test_render_failure_keeps_record(self, steps, caplog):
        with patch.object(steps.renderer, "render_test", side_effect=RenderError("boom", template_name="test.html")):
            with caplog.at_level(logging.WARNING):
                record = steps.on_test_end(make_case(), make_result())

        assert record is not None
        assert steps.summary.total == 1
        assert "Failed to render test 1" in caplog.text

    def test_broken_metadata_falls_back(self, steps):
        with patch("rbp_reporter.reporter.aggregator.process_tags", side_effect=RuntimeError("bad")):
            record = steps.on_test_end(make_case("Broken"), make_result("failed"))

        assert record.title == "Broken"
        assert record.status == "failed"
        assert steps.summary.total_failed == 1

    def test_prompt_failure_is_logged(self, specs, caplog):
        with patch.object(specs.prompt_generator, "generate_bundle", side_effect=ValueError("nope")):
            with caplog.at_level(logging.WARNING):
                record = specs.on_test_end(make_case(), make_result("failed", errors=["x"]))

        assert record.prompts is None
        assert "Failed to generate prompts" in caplog.text

    def test_next_test_still_reported(self, steps):
        with patch("rbp_reporter.core.types.RunSummary.add_record", side_effect=RuntimeError("boom")):
            assert steps.on_test_end(make_case("First"), make_result()) is None

        record = steps.on_test_end(make_case("Second"), make_result())
        assert record.title == "Second"

    def test_summary_render_failure(self, steps):
        with patch.object(steps.renderer, "render_summary", side_effect=RenderError("boom", template_name="summary.html")):
            assert steps.on_end(RunResult(status="passed", duration=0)) is None

        assert steps.state is AggregatorState.FINALIZED


class TestPersistence:
    """State shared between reporter instantiations."""

    def test_second_instance_resumes(self, settings, tmp_path):
        state_file = tmp_path / "state.json"

        first = SpecsReporter(state_file=state_file, settings=settings)
        first.on_begin(RunConfig(projects=[ProjectConfig(name="rbp-webkit")]))
        first.on_test_end(make_case("A"), make_result("passed"))

        second = SpecsReporter(state_file=state_file, settings=settings)
        second.on_begin(RunConfig())
        record = second.on_test_end(make_case("B"), make_result("failed", errors=["boom"]))
        second.on_end(RunResult(status="failed", duration=100))

        assert record.num == 2
        assert second.summary.total == 2
        assert second.summary.total_passed == 1
        assert second.summary.environment.browsers == ["Safari/WebKit"]

        data = json.loads(state_file.read_text())
        assert data["finalized"] is True
        assert data["next_num"] == 3

    def test_persist_state_setting(self, settings, tmp_path):
        settings.persist_state = True
        reporter = SpecsReporter(settings=settings)
        reporter.on_begin()
        reporter.on_test_end(make_case(), make_result())

        assert settings.state_file.exists()

    def test_pending_attachments_survive(self, settings, tmp_path, write_file):
        state_file = tmp_path / "state.json"
        source = write_file("trace.zip")

        first = SpecsReporter(state_file=state_file, settings=settings)
        first.on_begin()
        first.on_test_end(make_case(), make_result(attachments=[Attachment(name="trace", path=source)]))

        second = SpecsReporter(state_file=state_file, settings=settings)
        second.on_begin()
        second.on_end(RunResult(status="passed", duration=1))

        assert (tmp_path / "specs-report" / "1" / "trace.zip").exists()

    def test_aborted_run_is_not_resumed(self, settings, tmp_path):
        state_file = tmp_path / "state.json"

        with patch("rbp_reporter.reporter.aggregator.PROCESS_RUN_ID", "1234-crashed"):
            crashed = SpecsReporter(state_file=state_file, settings=settings)
            crashed.on_begin()
            crashed.on_test_end(make_case("Old"), make_result("failed", errors=["boom"]))

        reporter = SpecsReporter(state_file=state_file, settings=settings)
        reporter.on_begin()
        record = reporter.on_test_end(make_case("New"), make_result())
        reporter.on_end(RunResult(status="passed", duration=1))

        assert record.num == 1
        assert reporter.summary.total == 1
        assert reporter.summary.total_failed == 0
        assert json.loads(state_file.read_text())["run_id"] == reporter.run_id

    def test_finished_run_is_not_resumed(self, settings, tmp_path):
        state_file = tmp_path / "state.json"

        first = SpecsReporter(state_file=state_file, settings=settings)
        first.on_begin()
        first.on_test_end(make_case(), make_result())
        first.on_end(RunResult(status="passed", duration=1))

        second = SpecsReporter(state_file=state_file, settings=settings)
        second.on_begin()
        record = second.on_test_end(make_case(), make_result())

        assert record.num == 1
        assert second.summary.total == 1


class TestCreateReporter:
    def test_by_name(self, settings):
        assert isinstance(create_reporter("steps", settings=settings), StepReporter)
        assert isinstance(create_reporter("SPECS", settings=settings), SpecsReporter)

    def test_from_settings(self, settings):
        settings.reporter_type = "steps"
        assert isinstance(create_reporter(settings=settings), StepReporter)

    def test_unknown(self, settings):
        with pytest.raises(ValueError, match="Invalid reporter type"):
            create_reporter("allure", settings=settings)

    def test_report_root_override(self, settings, tmp_path):
        reporter = create_reporter("steps", settings=settings, report_root=tmp_path / "custom")
        assert reporter.report_root == tmp_path / "custom"
