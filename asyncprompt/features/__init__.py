"""Feature modules: segment configuration (YAML schema, migrations, loading)."""

from __future__ import annotations

__all__: list[str] = []
