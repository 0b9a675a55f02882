import pytest


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Capture outgoing mail instead of talking to SMTP; returns the outbox list."""
    outbox = []

    async def mock_send_verification_code_email(email: str, code: str) -> bool:
        outbox.append({"kind": "verification_code", "to": email, "code": code})
        return True

    async def mock_send_password_reset_email(email: str, username: str, reset_link: str) -> bool:
        outbox.append({"kind": "password_reset", "to": email, "username": username, "link": reset_link})
        return True

    monkeypatch.setattr("app.core.email.send_verification_code_email", mock_send_verification_code_email)
    monkeypatch.setattr("app.core.email.send_password_reset_email", mock_send_password_reset_email)
    return outbox
