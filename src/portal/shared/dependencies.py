"""Lazy-init singleton dependency getters.

Module-level singletons shared by every guarded route. Each getter
initializes its resource on first call and caches it for the process
lifetime. Thread-safe for servers running multiple worker threads.

Usage:
    from src.portal.shared.dependencies import get_session_provider

    provider = get_session_provider()
"""

import logging
import threading

from src.portal.shared.auth.session import JWTSessionProvider, SessionProvider

logger = logging.getLogger(__name__)

# Thread lock for concurrent initialization
_init_lock = threading.Lock()

# Singleton instances
_session_provider: SessionProvider | None = None


def get_session_provider() -> SessionProvider:
    """Get the session provider used by guards and gates (lazy singleton).

    Returns:
        JWTSessionProvider reading configuration from the environment.
    """
    global _session_provider
    if _session_provider is None:
        with _init_lock:
            if _session_provider is None:
                _session_provider = JWTSessionProvider()
                logger.debug("Initialized JWT session provider")
    return _session_provider


def reset_singletons() -> None:
    """Drop cached singletons (tests only)."""
    global _session_provider
    with _init_lock:
        _session_provider = None
