import json

import pytest


@pytest.fixture
def read_audit_entries():
    """Parse a JSON-lines audit log written by AuditLog."""

    def read(path) -> list[dict]:
        if not path.exists():
            return []
        with path.open(encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]

    return read
