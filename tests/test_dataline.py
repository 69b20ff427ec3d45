"""Header rewriting for data lines."""

import logging

import pytest

from conftest import RecordingClassifier
from spamclass_filter.dataline import DataLineFilter, parse_spam_score
from spamclass_filter.errors import ProtocolError
from spamclass_filter.models.session import Message


def make_message(envelope_to=("user@example.org",)):
    message = Message(id="m1")
    message.envelope_to.extend(envelope_to)
    return message


def feed(dlf, message, lines):
    out = []
    for line in lines:
        out.extend(dlf.process(message, line))
    return out


class TestHeaderPhase:
    def test_score_recorded_and_kept(self):
        dlf = DataLineFilter(RecordingClassifier())
        message = make_message()
        assert dlf.process(message, "X-Spam-Score: 1.155 / 100") == ["X-Spam-Score: 1.155 / 100"]
        assert message.spam_score == pytest.approx(1.155)
        assert message.spam_score_set is True

    def test_upstream_spam_headers_dropped(self):
        dlf = DataLineFilter(RecordingClassifier())
        message = make_message()
        assert dlf.process(message, "X-Spam: yes") == []
        assert dlf.process(message, "X-Spam-Class: original") == []

    def test_similar_headers_not_dropped(self):
        dlf = DataLineFilter(RecordingClassifier())
        message = make_message()
        assert dlf.process(message, "X-Spam-Status: No") == ["X-Spam-Status: No"]
        assert dlf.process(message, "X-Spam:no-space") == ["X-Spam:no-space"]

    def test_to_and_from_collected(self):
        dlf = DataLineFilter(RecordingClassifier())
        message = make_message()
        assert dlf.process(message, "To: Some One <one@example.org>") == ["To: Some One <one@example.org>"]
        dlf.process(message, "To: two@example.org")
        dlf.process(message, "From: sender@example.net")
        assert message.header_to == ["one@example.org", "two@example.org"]
        assert message.header_from == ["sender@example.net"]

    def test_unparseable_to_passes_through(self, caplog):
        dlf = DataLineFilter(RecordingClassifier())
        message = make_message()
        with caplog.at_level(logging.WARNING):
            assert dlf.process(message, "To: undisclosed-recipients:;") == ["To: undisclosed-recipients:;"]
        assert message.header_to == []
        assert "failed parsing header address" in caplog.text

    def test_bad_score_is_fatal(self):
        dlf = DataLineFilter(RecordingClassifier())
        with pytest.raises(ProtocolError) as exc:
            dlf.process(make_message(), "X-Spam-Score: lots")
        assert exc.value.code == "spam_score"


class TestHeaderBoundary:
    def test_headers_injected_before_blank_line(self):
        classifier = RecordingClassifier("possible")
        dlf = DataLineFilter(classifier)
        message = make_message()
        out = feed(dlf, message, ["X-Spam-Score: 1.155 / 100", "To: user@example.org", ""])
        assert out == [
            "X-Spam-Score: 1.155 / 100",
            "To: user@example.org",
            "X-Spam: no",
            "X-Spam-Class: possible",
            "",
        ]
        assert message.in_header is False
        assert classifier.calls == [(["user@example.org"], pytest.approx(1.155))]

    def test_spam_class_sets_x_spam_yes(self):
        dlf = DataLineFilter(RecordingClassifier("spam"))
        out = feed(dlf, make_message(), ["X-Spam-Score: 50", "To: user@example.org", ""])
        assert out[-3:] == ["X-Spam: yes", "X-Spam-Class: spam", ""]

    def test_empty_class_still_emits_x_spam(self):
        dlf = DataLineFilter(RecordingClassifier(""))
        out = feed(dlf, make_message(), ["X-Spam-Score: 2", "To: user@example.org", ""])
        assert out[-2:] == ["X-Spam: no", ""]

    def test_alias_stripped_for_classification(self):
        classifier = RecordingClassifier()
        dlf = DataLineFilter(classifier)
        message = make_message(envelope_to=("user+tag@example.org",))
        feed(dlf, message, ["X-Spam-Score: 2", "To: user+tag@example.org", ""])
        assert classifier.calls[0][0] == ["user@example.org"]

    def test_envelope_mismatch_only_warns(self, caplog):
        classifier = RecordingClassifier()
        dlf = DataLineFilter(classifier)
        message = make_message(envelope_to=("other@example.org",))
        with caplog.at_level(logging.WARNING):
            out = feed(dlf, message, ["X-Spam-Score: 2", "To: user@example.org", ""])
        assert "mismatches initial To" in caplog.text
        assert out[-3:] == ["X-Spam: no", "X-Spam-Class: possible", ""]
        assert classifier.calls[0][0] == ["user@example.org"]

    @pytest.mark.parametrize("lines,envelope_to", [
        (["To: user@example.org", ""], ("user@example.org",)),
        (["X-Spam-Score: 2", ""], ("user@example.org",)),
        (["X-Spam-Score: 2", "To: user@example.org", ""], ()),
    ])
    def test_missing_signal_fails_open(self, lines, envelope_to):
        classifier = RecordingClassifier()
        dlf = DataLineFilter(classifier)
        out = feed(dlf, make_message(envelope_to=envelope_to), lines)
        assert out == [line for line in lines]
        assert classifier.calls == []

    def test_whitespace_line_is_boundary(self):
        dlf = DataLineFilter(RecordingClassifier())
        message = make_message()
        out = feed(dlf, message, ["X-Spam-Score: 2", "To: user@example.org", "   "])
        assert out[-1] == "   "
        assert out[-3] == "X-Spam: no"
        assert message.in_header is False


class TestBodyPhase:
    def test_body_lines_pass_through_unchanged(self):
        classifier = RecordingClassifier()
        dlf = DataLineFilter(classifier)
        message = make_message()
        feed(dlf, message, ["X-Spam-Score: 2", "To: user@example.org", ""])
        body = ["X-Spam: yes", "To: someone@example.org", "X-Spam-Score: nonsense", "", "a | b", "."]
        assert feed(dlf, message, body) == body
        assert message.header_to == ["user@example.org"]
        assert len(classifier.calls) == 1


def test_parse_spam_score():
    assert parse_spam_score("X-Spam-Score: 1.155 / 100") == pytest.approx(1.155)
    assert parse_spam_score("X-Spam-Score: -0.5") == pytest.approx(-0.5)
    with pytest.raises(ProtocolError):
        parse_spam_score("X-Spam-Score:")
