"""Error pages the viewer can answer a request with."""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from http import HTTPStatus


class PageError(Exception):
    """Abort the current request with a fixed status line and message."""

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message = "Something went wrong."

    def __init__(self, message: str | None = None, *, location: str | None = None) -> None:
        self.message = message or self.default_message
        self.location = location
        super().__init__(self.message)

    @property
    def status_line(self) -> str:
        return f"{self.status.value} {self.status.phrase}"


class BadRequestError(PageError):
    status = HTTPStatus.BAD_REQUEST
    default_message = "Bad request"


class NotFoundError(PageError):
    status = HTTPStatus.NOT_FOUND
    default_message = "No such page"


class ServiceUnavailableError(PageError):
    status = HTTPStatus.SERVICE_UNAVAILABLE
    default_message = "Couldn't access database. Please try again later."


__all__ = [
    "BadRequestError",
    "NotFoundError",
    "PageError",
    "ServiceUnavailableError",
]
