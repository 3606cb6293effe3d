"""Session store exceptions."""


class SessionNotFound(Exception):
    """No session record exists for the requested account."""

    def __init__(self, account_id: str) -> None:
        self.account_id = account_id
        super().__init__(f"No session found for account_id={account_id!r}")
