from flask import Blueprint, jsonify, request

from security.guard import audit_denial
from security.ip_security import check_ip_before_request_server

security_bp = Blueprint("security", __name__, url_prefix="/api")


@security_bp.get("/check-ip-security")
def check_ip_security_endpoint():
    decision = check_ip_before_request_server(request)
    if not decision.allowed:
        audit_denial(decision)
        return jsonify(decision.to_dict()), 403
    return jsonify(decision.to_dict()), 200
