import pytest

from slack_attendance.classifier import classify_message
from slack_attendance.models import CHECKIN, CHECKOUT, OTHER


@pytest.mark.parametrize("text", ["checkin", "Check In", "  check-in ", "GM", "good morning", "arrived"])
def test_check_in_phrases(text):
    assert classify_message(text) == CHECKIN


@pytest.mark.parametrize("text", ["checkout", "Check-Out", "gn", "Done", "bye", "leaving"])
def test_check_out_phrases(text):
    assert classify_message(text) == CHECKOUT


@pytest.mark.parametrize("text", ["", "checking in late today", "done with the report", "in a meeting"])
def test_longer_messages_are_other(text):
    assert classify_message(text) == OTHER
