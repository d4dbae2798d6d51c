from __future__ import annotations

from tasksync._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "status": "new",
        "apiToken": "secret",
        "password": "pw",
        "nested": {"primary_contact": "+27 555 0100", "Authorization": "Bearer abc"},
        "records": [{"idPassport": "X1234567", "reference_number": "REQ-1"}],
    }

    redacted = redact_for_log(payload)
    assert redacted["status"] == "new"
    assert redacted["apiToken"] == "<redacted>"
    assert redacted["password"] == "<redacted>"
    assert redacted["nested"]["primary_contact"] == "<redacted>"
    assert redacted["nested"]["Authorization"] == "<redacted>"
    assert redacted["records"][0]["idPassport"] == "<redacted>"
    assert redacted["records"][0]["reference_number"] == "REQ-1"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]
