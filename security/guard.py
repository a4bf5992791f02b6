from functools import wraps
from flask import request, jsonify

from security.ip_security import check_ip_before_request_server, get_client_ip
from utils.audit import log_event

def audit_denial(decision):
    ip_address = get_client_ip(request)
    log_event("IP_ACCESS_DENIED", entity="ip", entity_id=ip_address, ip=ip_address,
              metadata={"reason": decision.reason, "path": request.path})

def ip_protected(fn):
    """
    Usage: @ip_protected
    Rejects the request with 403 when the caller's IP is (or just became) blocked.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        decision = check_ip_before_request_server(request)
        if not decision.allowed:
            audit_denial(decision)
            return jsonify(error="Access blocked", reason=decision.reason), 403
        return fn(*args, **kwargs)
    return wrapper
