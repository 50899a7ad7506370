from __future__ import annotations

import io
import unittest
from contextlib import redirect_stdout

from tagfilter.output import REPORT_HEADER, OutputSink, RejectReason, Rejection, format_report
from tagfilter.tokens import FilterError


class TestReportFormat(unittest.TestCase):
    def test_report_lines(self) -> None:
        report = format_report(
            [
                Rejection("blink", RejectReason.TAG),
                Rejection("p", RejectReason.ATTRIBUTE, "style", "color:<red>"),
                Rejection("img", RejectReason.URL, "src", "javascript:x"),
            ]
        )
        assert report == (
            REPORT_HEADER + "\n"
            "&lt;blink&gt;\n"
            'style="color:&lt;red&gt;" from the tag &lt;p&gt;\n'
            'src="javascript:x" from the tag &lt;img&gt;(url disallowed)\n'
        )

    def test_reason_is_a_string(self) -> None:
        assert RejectReason.URL == "url"
        assert str(RejectReason.ATTRIBUTE) == "attribute"


class TestOutputSink(unittest.TestCase):
    def test_buffers_until_taken(self) -> None:
        sink = OutputSink()
        sink.append("<p>")
        sink.append("")
        sink.append("hi")
        assert sink.take_output() == "<p>hi"
        assert sink.take_output() == ""

    def test_empty_output_for_real_input_is_recorded(self) -> None:
        errors: list[FilterError] = []
        sink = OutputSink(errors=errors)
        sink.input_seen = True
        assert sink.take_output() == ""
        assert [error.code for error in errors] == ["no-output"]
        assert str(errors[0]) == "[warning] no output from filter"
        sink.take_output()
        assert len(errors) == 1

    def test_echo_to_callable(self) -> None:
        written: list[str] = []
        errors: list[FilterError] = []
        sink = OutputSink(echo=written.append, errors=errors)
        sink.input_seen = True
        sink.append("a")
        sink.append("b")
        assert sink.echoing
        assert written == ["a", "b"]
        assert sink.take_output() == ""
        assert errors == []

    def test_echo_to_stream(self) -> None:
        stream = io.StringIO()
        sink = OutputSink(echo=stream)
        sink.append("text")
        assert stream.getvalue() == "text"

    def test_echo_true_writes_to_stdout(self) -> None:
        captured = io.StringIO()
        sink = OutputSink(echo=True)
        with redirect_stdout(captured):
            sink.append("out")
        assert captured.getvalue() == "out"

    def test_bad_echo_target(self) -> None:
        with self.assertRaises(TypeError):
            OutputSink(echo=object())  # type: ignore[arg-type]

    def test_rejections_are_only_kept_when_logging(self) -> None:
        sink = OutputSink()
        sink.log_rejection(Rejection("b", RejectReason.TAG))
        assert sink.drain_report(structured=True) == []
        assert sink.drain_report() is None

    def test_report_drains(self) -> None:
        sink = OutputSink(log_rejects=True)
        rejection = Rejection("b", RejectReason.TAG)
        sink.log_rejection(rejection)
        assert sink.drain_report() == REPORT_HEADER + "\n&lt;b&gt;\n"
        assert sink.drain_report() is None
        sink.log_rejection(rejection)
        assert sink.drain_report(structured=True) == [rejection]
        assert sink.drain_report(structured=True) == []

    def test_reset(self) -> None:
        sink = OutputSink(log_rejects=True)
        sink.append("x")
        sink.log_rejection(Rejection("b", RejectReason.TAG))
        sink.input_seen = True
        sink.reset()
        assert sink.take_output() == ""
        assert sink.drain_report() is None
        assert sink.errors == []


if __name__ == "__main__":
    unittest.main()
