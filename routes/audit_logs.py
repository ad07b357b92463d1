from flask import Blueprint, jsonify, request, current_app
from models.audit_log import AuditLog
from security.rbac import require_admin

audit_bp = Blueprint("audit", __name__)


@audit_bp.get("/audit-logs")
@require_admin
def list_audit_logs():
    cfg = current_app.config
    limit = request.args.get("limit", type=int) or cfg.get("AUDIT_LOG_DEFAULT_LIMIT", 200)
    limit = max(1, min(limit, cfg.get("AUDIT_LOG_MAX_LIMIT", 500)))

    action = request.args.get("action")
    q = AuditLog.query
    if action:
        q = q.filter(AuditLog.action == action)

    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify(logs=[
        {
            "id": r.id,
            "createdAt": r.timestamp.isoformat() if r.timestamp else None,
            "userId": r.user_id,
            "action": r.action,
            "entity": r.entity,
            "entityId": r.entity_id,
            "ip": r.ip,
            "userAgent": r.user_agent,
            "metadata": r.metadata_json,
        }
        for r in rows
    ]), 200
