# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""Exception types raised by the quota engine."""

from typing import Optional


class QuotaEngineError(Exception):
    """Base class for all quota engine errors."""


class ConfigurationError(QuotaEngineError):
    """Settings are missing or malformed."""


class ManagementAPIError(QuotaEngineError):
    """
    A call to the management API failed.

    Raised for transport failures as well as non-2xx responses;
    ``status_code`` is None when no response was received.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class QuotaFetchError(QuotaEngineError):
    """Fetching raw quota for one credential failed upstream."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        credential: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.credential = credential
        self.status_code = status_code
