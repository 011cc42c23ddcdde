"""Errors raised while turning a request template into a request."""

from __future__ import annotations


class RequestTemplateError(Exception):
    """Base class for all errors raised by :func:`reqforge.template.materialize`."""


class TemplateFileError(RequestTemplateError):
    def __init__(self, path: str, reason: OSError) -> None:
        self.path = path
        detail = reason.strerror or str(reason)
        super().__init__(f"unable to read template file {path}: {detail}")


class TemplateParseError(RequestTemplateError, ValueError):
    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"error reading HTTP request from {path}: {detail}")


class UrlSyntaxError(RequestTemplateError, ValueError):
    pass


class UrlValidationError(RequestTemplateError, ValueError):
    pass


class UnsupportedConfigurationError(RequestTemplateError):
    pass


class RequestConstructionError(RequestTemplateError, ValueError):
    pass
