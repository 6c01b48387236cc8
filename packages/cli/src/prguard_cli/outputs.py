"""GitHub Actions step outputs.

Outputs are appended to the file named by $GITHUB_OUTPUT. Multi-line values
use the delimiter form:

    name<<DELIMITER
    value
    DELIMITER
"""

from __future__ import annotations

import uuid


def write_outputs(path: str, outputs: dict[str, str]) -> None:
    with open(path, "a", encoding="utf-8") as f:
        for name, value in outputs.items():
            if "\n" in value:
                delimiter = f"ghadelimiter_{uuid.uuid4()}"
                f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
            else:
                f.write(f"{name}={value}\n")
