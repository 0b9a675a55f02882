"""Small helpers shared across Yunoa services (dates, email, scheduling)."""

__all__: list[str] = []
