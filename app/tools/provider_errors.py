from __future__ import annotations

import re
from typing import Optional

# Quota or payment exhaustion as reported by upstream providers.
CREDITS_PATTERN = re.compile(r"credits|402|used up", re.IGNORECASE)


class ProviderError(RuntimeError):
    """Non-2xx response or misconfiguration of an upstream provider."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: str = "",
        provider: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.provider = provider


def is_credits_error(error: BaseException | str | None) -> bool:
    """True when an error (or its message) signals exhausted credits."""
    if error is None:
        return False
    if isinstance(error, ProviderError) and error.status_code == 402:
        return True
    return bool(CREDITS_PATTERN.search(str(error)))
