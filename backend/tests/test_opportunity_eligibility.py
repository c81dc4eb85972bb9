from __future__ import annotations

import uuid
from types import SimpleNamespace

import pytest

from kings_canvas.opportunities.eligibility import canonical_step_id, is_eligible
from kings_canvas.opportunities.types import Step


@pytest.mark.parametrize("status", [None, "active", "accepted", "Ghost", "SUGGESTED", "rejected"])
def test_step_without_persisted_id_is_never_eligible(status):
    assert is_eligible({"status": status}) is False
    assert is_eligible({"stepId": "   ", "status": status}) is False
    # A client-side id on a Step model is not a persisted identity.
    assert is_eligible(Step(id="client-1", title="t", status=status)) is False


@pytest.mark.parametrize("status", ["ghost", "GHOST", " suggested ", "Rejected"])
def test_excluded_statuses_are_ineligible(status):
    assert is_eligible({"stepId": "abc", "status": status}) is False


@pytest.mark.parametrize("status", [None, "active", "accepted", "done", ""])
def test_other_statuses_are_eligible(status):
    assert is_eligible({"stepId": "abc", "status": status}) is True


def test_native_identifiers_count_as_persisted():
    native = uuid.uuid4()
    assert is_eligible({"_id": native}) is True
    assert canonical_step_id({"_id": native}) == native.hex
    assert canonical_step_id(SimpleNamespace(_id=b"\x01\xab", status=None)) == "01ab"
    assert is_eligible(Step(stepId="s1", title="t")) is True


def test_never_raises_on_odd_input():
    class Exploding:
        def __getattr__(self, name):
            raise RuntimeError("boom")

    assert is_eligible(None) is False
    assert is_eligible(42) is False
    assert is_eligible(Exploding()) is False
    assert is_eligible({"stepId": 123}) is False
