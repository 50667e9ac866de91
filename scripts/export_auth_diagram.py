#!/usr/bin/env python
"""Exporta o diagrama da máquina de autenticação.

Uso:
    python scripts/export_auth_diagram.py            # DOT (Graphviz)
    python scripts/export_auth_diagram.py mermaid    # Mermaid stateDiagram-v2
"""

import sys

from authflow.application.fsm_diagnostics import to_dot, to_mermaid
from authflow.config import get_settings
from authflow.domain.auth import build_auth_transition_table
from authflow.observability.logging import configure_logging


def main(argv: list[str]) -> int:
    fmt = argv[1] if len(argv) > 1 else "dot"
    settings = get_settings()
    configure_logging(settings.log_level, settings.service_name, settings.log_format)
    table = build_auth_transition_table(settings.auth_policy())

    if fmt == "dot":
        print(to_dot(table, name="AuthStateMachine"))
    elif fmt == "mermaid":
        print(to_mermaid(table))
    else:
        print(f"Formato desconhecido: {fmt} (use dot | mermaid)", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
