import io
import logging

from flask import jsonify, request, send_file
from flask_login import login_required

from api import api_bp
from permissions.decorators import current_principal, principal_required
from services.container import get_services
from services.errors import Forbidden, NotFound, ValidationError
from utils.audit_helpers import client_ip
from utils.uploads import UploadFile

logger = logging.getLogger(__name__)


# =========================
# Serializers
# =========================
def _iso(value):
    return value.isoformat() if value else None


def _document_json(doc):
    return {
        "id": doc.id,
        "assignmentId": doc.assignment_id,
        "fileName": doc.file_name,
        "fileSize": doc.file_size,
        "mimeType": doc.mime_type,
        "note": doc.note,
        "version": doc.version,
        "isLatest": doc.is_latest,
        "uploadedById": doc.uploaded_by_id,
        "createdAt": _iso(doc.created_at),
    }


def _assignment_json(a):
    return {
        "id": a.id,
        "requestId": a.request_id,
        "employeeId": a.employee_id,
        "status": a.status,
        "dueDate": _iso(a.due_date),
        "reviewNote": a.review_note,
        "reviewedById": a.reviewed_by_id,
        "reviewedAt": _iso(a.reviewed_at),
        "reminderCount": a.reminder_count,
    }


def _request_json(r):
    return {
        "id": r.id,
        "title": r.title,
        "description": r.description,
        "deadline": _iso(r.deadline),
        "priority": r.priority,
        "status": r.status,
        "targetType": r.target_type,
        "acceptedFormats": r.accepted_formats,
        "maxFileSizeMb": r.max_file_size_mb,
        "slots": [s.name for s in r.slots],
        "assignedCount": len(r.assignments),
    }


def _notification_json(n):
    return {
        "id": n.id,
        "type": n.type,
        "title": n.title,
        "message": n.message,
        "link": n.link,
        "isRead": n.is_read,
        "createdAt": _iso(n.created_at),
    }


def _body():
    return request.get_json(silent=True) or {}


# =========================
# Submissions
# =========================
@api_bp.route("/assignments/<int:assignment_id>/upload", methods=["POST"])
@login_required
@principal_required()
def upload_document(assignment_id):
    storage = request.files.get("file")
    if storage is None or not storage.filename:
        raise ValidationError("No file provided")

    doc = get_services().submissions.submit(
        assignment_id,
        current_principal(),
        UploadFile.from_storage(storage),
        note=request.form.get("note"),
        ip_address=client_ip(),
    )
    return jsonify({"success": True, "data": _document_json(doc)}), 201


@api_bp.route("/documents/<int:document_id>", methods=["DELETE"])
@login_required
@principal_required()
def delete_document(document_id):
    reverted = get_services().submissions.delete_document(
        document_id, current_principal(), ip_address=client_ip()
    )
    return jsonify({"success": True, "revertedToPending": reverted})


@api_bp.route("/documents/<int:document_id>/download")
@login_required
@principal_required()
def download_document(document_id):
    services = get_services()
    principal = current_principal()

    doc = services.store.get_document(document_id)
    if doc is None:
        raise NotFound("Document not found")
    assignment = doc.assignment
    employee = assignment.employee
    if not (
        principal.owns(assignment)
        or principal.can_review()
        or principal.can_access_department(employee.department if employee else None)
    ):
        raise Forbidden("Access denied")

    try:
        data = services.file_store.read(doc.file_path)
    except FileNotFoundError:
        logger.warning("Document %s has no file at %s", doc.id, doc.file_path)
        raise NotFound("File not found")
    return send_file(
        io.BytesIO(data),
        mimetype=doc.mime_type or "application/octet-stream",
        as_attachment=True,
        download_name=doc.file_name,
    )


# =========================
# Review
# =========================
@api_bp.route("/assignments/<int:assignment_id>/review", methods=["POST"])
@login_required
@principal_required("can_review")
def review_assignment(assignment_id):
    body = _body()
    assignment = get_services().reviews.review(
        assignment_id,
        current_principal(),
        body.get("decision") or body.get("status"),
        note=body.get("note"),
        ip_address=client_ip(),
    )
    return jsonify({"success": True, "data": _assignment_json(assignment)})


# =========================
# Reminders
# =========================
@api_bp.route("/tracking/send-reminders", methods=["POST"])
@login_required
@principal_required("can_send_reminders")
def send_reminders():
    body = _body()
    report = get_services().reminders.send_reminders(
        current_principal(),
        request_id=body.get("requestId"),
        department=body.get("departmentFilter"),
        employee_ids=body.get("employeeIds"),
        status=body.get("statusFilter"),
        ip_address=client_ip(),
    )
    payload = {"success": True}
    payload.update(report.as_dict())
    if not report.assignment_count:
        payload["message"] = "No matching assignments found"
    return jsonify(payload)


# =========================
# Requests
# =========================
@api_bp.route("/requests", methods=["POST"])
@login_required
@principal_required()
def create_request():
    body = _body()
    doc_request = get_services().requests.create_request(
        current_principal(),
        title=body.get("title"),
        deadline=body.get("deadline"),
        description=body.get("description"),
        priority=body.get("priority"),
        target_type=body.get("targetType"),
        department=body.get("department"),
        employee_ids=body.get("employeeIds"),
        accepted_formats=body.get("acceptedFormats"),
        max_file_size_mb=body.get("maxFileSizeMb"),
        notes=body.get("notes"),
        slots=body.get("slots"),
        ip_address=client_ip(),
    )
    return jsonify({"success": True, "data": _request_json(doc_request)}), 201


@api_bp.route("/requests/<int:request_id>/cancel", methods=["POST"])
@login_required
@principal_required()
def cancel_request(request_id):
    doc_request = get_services().requests.cancel_request(
        current_principal(), request_id, ip_address=client_ip()
    )
    return jsonify({"success": True, "data": _request_json(doc_request)})


# =========================
# Notifications
# =========================
@api_bp.route("/notifications")
@login_required
@principal_required()
def list_notifications():
    unread_only = request.args.get("unread") in ("1", "true")
    try:
        limit = min(200, max(1, int(request.args.get("limit", 50))))
    except ValueError:
        raise ValidationError("limit must be a number")

    items = get_services().inbox.list_for(current_principal().id, unread_only=unread_only, limit=limit)
    return jsonify({"success": True, "data": [_notification_json(n) for n in items]})


@api_bp.route("/notifications/read", methods=["PATCH", "POST"])
@login_required
@principal_required()
def mark_notifications_read():
    body = _body()
    count = get_services().inbox.mark_read(
        current_principal().id,
        notification_id=body.get("notificationId"),
        mark_all=bool(body.get("markAll")),
    )
    return jsonify({"success": True, "updated": count, "message": "Marked as read"})


# =========================
# Users (admin)
# =========================
@api_bp.route("/users/<int:user_id>", methods=["PATCH"])
@login_required
@principal_required()
def update_user(user_id):
    body = _body()
    services = get_services()
    principal = current_principal()
    user = None

    if body.get("role"):
        user = services.users.change_role(
            principal,
            user_id,
            body["role"],
            managed_department=body.get("managedDepartment"),
            ip_address=client_ip(),
        )
    if body.get("isActive") is False:
        user = services.users.deactivate_user(principal, user_id, ip_address=client_ip())

    if user is None:
        raise ValidationError("Nothing to update")

    return jsonify({
        "success": True,
        "data": {
            "id": user.id,
            "email": user.email,
            "role": user.role,
            "managedDepartment": user.managed_department,
            "isActive": user.is_active,
        },
    })
