from __future__ import annotations

import pytest

from askit.core.errors import CoreError, NotFoundError, UpstreamError, ValidationError

pytestmark = pytest.mark.unit


def test_core_error_renders_problem_details() -> None:
    error = ValidationError("top_k out of range", details={"top_k": 0})

    payload = error.to_dict()

    assert payload == {
        "type": "https://askit.dev/errors/validation_error",
        "title": "top_k out of range",
        "status": 422,
        "code": "validation_error",
        "details": {"top_k": 0},
    }


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (NotFoundError("missing"), 404),
        (UpstreamError("provider down", code="unreachable"), 502),
        (CoreError("boom"), 500),
    ],
)
def test_status_codes(error: CoreError, status: int) -> None:
    assert error.status_code == status
    assert "details" not in error.to_dict()
