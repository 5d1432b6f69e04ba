"""
Unit tests for the formatting and file helpers.
"""

import logging
import shutil

import pytest

from rbp_reporter.core.types import Attachment
from rbp_reporter.reporter.helpers import FileHelper, ansi_to_html, format_duration, status_icon
from conftest import make_result


class TestFormatDuration:
    """Tests for format_duration."""

    @pytest.mark.parametrize(
        "duration, expected",
        [
            (0, "0ms"),
            (500, "500ms"),
            (999, "999ms"),
            (1000, "1s 0ms"),
            (1500, "1s 500ms"),
            (59999, "59s 999ms"),
            (60000, "1m 0s 0ms"),
            (65500, "1m 5s 500ms"),
            (3600000, "60m 0s 0ms"),
        ],
    )
    def test_buckets(self, duration, expected):
        assert format_duration(duration) == expected

    def test_fractional_milliseconds_are_floored(self):
        assert format_duration(1500.9) == "1s 500ms"
        assert format_duration(0.4) == "0ms"

    def test_negative_duration(self):
        assert format_duration(-500) == "-500ms"
        assert format_duration(-1500) == "-1s 500ms"
        assert format_duration(-65500) == "-1m 5s 500ms"


class TestStatusIcon:
    """Tests for status_icon."""

    @pytest.mark.parametrize(
        "status, icon",
        [
            ("passed", "check_circle"),
            ("failed", "cancel"),
            ("skipped", "skip_next"),
            ("flaky", "warning"),
            ("timedOut", "hourglass_empty"),
        ],
    )
    def test_known_statuses(self, status, icon):
        assert status_icon(status) == icon

    def test_unknown_status(self):
        assert status_icon("interrupted") == ""
        assert status_icon(None) == ""


class TestAnsiToHtml:
    """Tests for ansi_to_html."""

    def test_colors(self):
        text = "\u001b[31mRed\u001b[0m and \u001b[32mGreen\u001b[0m"
        assert ansi_to_html(text) == (
            '<span style="color: red;">Red</span> and <span style="color: green;">Green</span>'
        )

    def test_newlines(self):
        assert ansi_to_html("Line 1\nLine 2\nLine 3") == "Line 1<br>Line 2<br>Line 3"

    def test_mixed(self):
        text = "\u001b[31mError:\u001b[0m\n\u001b[33mWarning:\u001b[0m\nNormal text"
        assert ansi_to_html(text) == (
            '<span style="color: red;">Error:</span><br>'
            '<span style="color: yellow;">Warning:</span><br>Normal text'
        )

    def test_unknown_codes_pass_through(self):
        assert ansi_to_html("\u001b[2mdim\u001b[0m") == "\u001b[2mdim</span>"

    def test_markup_is_escaped(self):
        assert ansi_to_html("expected <div> & more") == "expected &lt;div&gt; &amp; more"

    def test_empty_input(self):
        assert ansi_to_html("") == ""
        assert ansi_to_html(None) == ""


class TestFileHelper:
    """Tests for FileHelper."""

    def test_copy_file(self, tmp_path, write_file):
        source = write_file("trace.zip", "trace")
        destination = tmp_path / "report" / "1"

        result = FileHelper().copy_file_to_results(destination, source)

        assert result == "trace.zip"
        assert (destination / "trace.zip").read_text() == "trace"

    def test_missing_source(self, tmp_path):
        destination = tmp_path / "report" / "1"

        assert FileHelper().copy_file_to_results(destination, str(tmp_path / "missing.txt")) == ""
        assert not destination.exists()

    @pytest.mark.parametrize("source", ["", "   ", None])
    def test_blank_source(self, tmp_path, source):
        destination = tmp_path / "report" / "1"

        assert FileHelper().copy_file_to_results(destination, source) == ""
        assert not destination.exists()

    def test_copy_failure_is_logged(self, tmp_path, write_file, monkeypatch, caplog):
        source = write_file("video.webm")

        def failing_copy(src, dst):
            raise PermissionError("denied")

        monkeypatch.setattr(shutil, "copyfile", failing_copy)

        with caplog.at_level(logging.WARNING):
            result = FileHelper().copy_file_to_results(tmp_path / "dest", source)

        assert result == ""
        assert "Failed to copy file" in caplog.text

    def test_copy_video(self, tmp_path, write_file):
        result = make_result(attachments=[
            Attachment(name="trace", path=write_file("trace.zip")),
            Attachment(name="video", path=write_file("video.webm")),
        ])

        assert FileHelper().copy_video(result, tmp_path / "dest") == "video.webm"
        assert (tmp_path / "dest" / "video.webm").exists()

    def test_copy_video_without_video(self, tmp_path):
        assert FileHelper().copy_video(make_result(), tmp_path / "dest") == ""

    def test_copy_screenshots_drops_failures(self, tmp_path, write_file):
        result = make_result(attachments=[
            Attachment(name="screenshot", path=write_file("one.png")),
            Attachment(name="screenshot", path=str(tmp_path / "missing.png")),
            Attachment(name="screenshot", path=write_file("two.png")),
        ])

        assert FileHelper().copy_screenshots(result, tmp_path / "dest") == ["one.png", "two.png"]
