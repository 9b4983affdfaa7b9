"""Shared plumbing for the namespace redirectors."""

from __future__ import annotations

import logging
from typing import Any

from ..identity import Identity

logger = logging.getLogger(__name__)


class Redirector:
    """Base for adapters that canonicalize a namespace argument before delegating."""

    def __init__(self, identity: Identity):
        self.identity = identity

    def _canonical(self, namespace: Any) -> Any:
        """
        Canonicalize namespace, forwarding it untouched if that fails.

        A malformed identifier must never break a call into an unrelated
        namespace.
        """
        try:
            return self.identity.canonicalize(namespace)
        except TypeError:
            logger.debug("Could not canonicalize namespace %r; forwarding as-is", namespace)
            return namespace
