"""
Visitor fingerprinting and the pre-flight IP check.

The visitor id is a best-effort, self-reported identifier: it is derived from
local device signals and can be spoofed. Abuse mitigation relies on the
server-side IP signals, not on the integrity of this value.
"""
import hashlib
import locale
import logging
import platform
import socket
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional

import requests

from security.access import AccessDecision

logger = logging.getLogger(__name__)

CHECK_IP_PATH = "/api/check-ip-security"
DEFAULT_TIMEOUT_SECONDS = 5

_agent = None
_agent_lock = threading.Lock()


@dataclass(frozen=True)
class FingerprintResult:
    visitor_id: str
    components: Dict[str, str] = field(default_factory=dict)


class FingerprintAgent:
    """
    Device signals are collected once, when the agent is built. A user agent
    is mixed in per call to ``get``; the one given here is the default.
    """

    def __init__(self, user_agent: Optional[str] = None):
        self.user_agent = user_agent
        self._components = self._collect_components()

    def _collect_components(self) -> Dict[str, str]:
        lang, encoding = locale.getlocale()
        components = {
            "os": platform.system(),
            "os_release": platform.release(),
            "arch": platform.machine(),
            "runtime": f"{platform.python_implementation()} {platform.python_version()}",
            "hostname": socket.gethostname(),
            "node": format(uuid.getnode(), "x"),
            "locale": f"{lang or ''}.{encoding or ''}",
            "timezone": "/".join(time.tzname),
        }
        return components

    def get(self, user_agent: Optional[str] = None) -> FingerprintResult:
        components = dict(self._components)
        user_agent = user_agent or self.user_agent
        if user_agent:
            components["user_agent"] = user_agent
        payload = "|".join(f"{k}={v}" for k, v in sorted(components.items()))
        visitor_id = hashlib.sha256(payload.encode("utf-8")).hexdigest()[:32]
        return FingerprintResult(visitor_id=visitor_id, components=components)


def load(user_agent: Optional[str] = None) -> FingerprintAgent:
    """
    Return the process-wide agent, building it on first use. Concurrent first
    callers wait on the same initialization instead of collecting twice.
    ``user_agent`` only sets the default of a newly built agent; pass it to
    ``get`` or ``get_fingerprint`` to vary it per call.
    """
    global _agent
    if _agent is None:
        with _agent_lock:
            if _agent is None:
                _agent = FingerprintAgent(user_agent=user_agent)
    return _agent


def reset() -> None:
    global _agent
    with _agent_lock:
        _agent = None


def get_fingerprint(user_agent: Optional[str] = None) -> str:
    # Collection errors propagate to the caller
    return load().get(user_agent).visitor_id


def check_ip_before_request(base_url: str, session: Optional[requests.Session] = None,
                            timeout: float = DEFAULT_TIMEOUT_SECONDS) -> AccessDecision:
    """
    Ask the server whether this visitor may proceed. Only an explicit 403
    denies; every other failure fails open.
    """
    http = session or requests
    try:
        response = http.get(base_url.rstrip("/") + CHECK_IP_PATH, timeout=timeout)
    except requests.RequestException:
        logger.exception("Error checking IP security")
        return AccessDecision.fail_open()

    if response.status_code == 403:
        try:
            body = response.json()
        except ValueError:
            body = None
        reason = body.get("reason") if isinstance(body, dict) else None
        return AccessDecision.deny(reason)

    if not response.ok:
        logger.warning("IP security check returned %s, allowing request", response.status_code)
    return AccessDecision.allow()
