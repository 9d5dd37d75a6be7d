from flask import has_request_context, request


def client_ip():
    """Best guess of the caller's IP for AuditLog.ip_address (None outside a request)."""
    if not has_request_context():
        return None

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.remote_addr or "unknown"
