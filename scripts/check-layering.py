#!/usr/bin/env python3
"""
Fail the build if services/controllers contain raw SQL/connection usage.
"""

import sys
from pathlib import Path

FORBIDDEN = [
    "conn.execute",
    "transactional_connection(",
    "sa_connection(",
    "engine.connect(",
    "db.session",
]

BACKEND_DIR = Path(__file__).resolve().parent.parent / "backend"
LAYERS = ("services", "controllers")


def scan_paths(paths):
    violations = []
    for path in paths:
        for file in sorted(Path(path).rglob("*.py")):
            text = file.read_text(encoding="utf-8")
            for idx, line in enumerate(text.splitlines(), start=1):
                if any(token in line for token in FORBIDDEN):
                    violations.append(f"{file}:{idx}: {line.strip()}")
    return violations


def main() -> int:
    violations = scan_paths([BACKEND_DIR / layer for layer in LAYERS])
    if violations:
        print("Forbidden data-layer usage found:")
        for v in violations:
            print(v)
        return 1
    print("Layering check passed: no forbidden tokens in services/controllers.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
