"""
HTTP status codes this server can answer with.

There are exactly two. Anything that goes wrong before a status can be
chosen (a malformed request line) gets no response at all.
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Status codes and their reason phrases.

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.OK.phrase
        'Ok'
    """

    OK = 200           # Resource opened fine
    NOT_FOUND = 404    # Probe could not open the resource

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line.

            HTTP/1.1 200 Ok
                     ─── ──
                      │   └── phrase
                      └────── code
        """
        return _STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        return self >= 400


# "Ok", not "OK": clients match on the code, and this is the phrase the
# server has always sent.
_STATUS_PHRASES = {
    HTTPStatus.OK: "Ok",
    HTTPStatus.NOT_FOUND: "Not Found",
}
