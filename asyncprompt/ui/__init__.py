"""Terminal front-end. Imported lazily so the core stays importable without a TTY."""
