"""Imperative shell: session-bound services and the ElectionService facade."""
