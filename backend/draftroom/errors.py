"""Typed draft errors.

Every error is a ``ValueError`` so callers that only care about "the request
was rejected" can keep catching that.  ``kind`` and ``status_code`` let the
routers turn an error into an HTTP response without a lookup table.
"""

from __future__ import annotations

from typing import Optional


class DraftError(ValueError):
    kind = "draft_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class PreconditionFailed(DraftError):
    kind = "precondition_failed"
    status_code = 409


class RegistrationError(PreconditionFailed):
    kind = "registration_failed"


class NotStarted(DraftError):
    kind = "not_started"
    status_code = 409


class AlreadyTerminal(DraftError):
    kind = "already_terminal"
    status_code = 409


class WrongTurn(DraftError):
    kind = "wrong_turn"
    status_code = 409

    def __init__(self, expected_team: Optional[str], requested_team: str):
        super().__init__(
            f"Not {requested_team}'s turn! Current turn: {expected_team}"
        )
        self.expected_team = expected_team
        self.requested_team = requested_team

    def to_detail(self) -> dict:
        return {**super().to_detail(), "expected_team": self.expected_team}


class DraftNotFound(DraftError):
    kind = "draft_not_found"
    status_code = 404


class TeamNotFound(DraftError):
    kind = "team_not_found"
    status_code = 404


class PlayerNotFound(DraftError):
    kind = "player_not_found"
    status_code = 404


class PlayerUnavailable(DraftError):
    kind = "player_unavailable"
    status_code = 409

    def __init__(self, message: str, available_count: int):
        super().__init__(message)
        self.available_count = available_count

    def to_detail(self) -> dict:
        return {**super().to_detail(), "available_count": self.available_count}


class NotAuthenticated(DraftError):
    kind = "not_authenticated"
    status_code = 401


class NotAuthorized(DraftError):
    kind = "not_authorized"
    status_code = 403
