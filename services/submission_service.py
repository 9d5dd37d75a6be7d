import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from assignments import state_machine
from assignments.state_machine import Event
from models import AssignmentStatus, Document, RequestStatus
from services.audit_service import DeleteDocument, UploadDocument
from services.errors import (
    DependencyFailure,
    DrmsError,
    Forbidden,
    InvalidState,
    NotFound,
    ValidationError,
)
from utils.uploads import storage_key, validate_file_size, validate_file_type

logger = logging.getLogger(__name__)


class SubmissionService:
    """Employee uploads and document deletion for an assignment."""

    def __init__(self, store, file_store, fanout, audit, clock):
        self.store = store
        self.file_store = file_store
        self.fanout = fanout
        self.audit = audit
        self.clock = clock

    # =========================
    # Upload
    # =========================
    def submit(self, assignment_id, principal, upload, note=None, ip_address=None):
        assignment = self.store.get_assignment(assignment_id)
        if assignment is None or assignment.request is None:
            raise NotFound("Assignment not found")
        doc_request = assignment.request

        if not principal.can_upload_to(assignment):
            raise Forbidden("Access denied")

        if doc_request.status != RequestStatus.OPEN:
            raise InvalidState("This request is no longer accepting submissions")
        if not state_machine.can_apply(assignment, Event.UPLOAD):
            raise InvalidState("This assignment has already been approved")

        self._validate(upload, doc_request)

        key = storage_key(doc_request.id, assignment.id, upload.file_name)
        try:
            self.file_store.save(upload.content, key)
        except (OSError, ValueError):
            logger.exception("Could not store upload for assignment %s", assignment.id)
            raise DependencyFailure("Failed to store the uploaded file")

        try:
            # Lock the row so version allocation is serialized per assignment
            assignment = self.store.get_assignment(assignment.id, for_update=True)
            state_machine.apply(assignment, Event.UPLOAD)

            version = self.store.max_document_version(assignment.id) + 1
            self.store.clear_latest(assignment.id)
            document = self.store.add_document(Document(
                assignment_id=assignment.id,
                uploaded_by_id=principal.id,
                file_name=upload.file_name,
                file_path=key,
                file_size=upload.size,
                mime_type=upload.mime_type,
                note=(note or "").strip() or None,
                version=version,
                is_latest=True,
                created_at=self.clock.now(),
            ))
            self.store.commit()
        except DrmsError:
            self._abort(key)
            raise
        except IntegrityError:
            self._abort(key)
            raise InvalidState("Another upload for this assignment was saved at the same time, please retry")
        except SQLAlchemyError:
            logger.exception("Upload transaction failed for assignment %s", assignment_id)
            self._abort(key)
            raise DependencyFailure("Failed to save the document")

        logger.info(
            "Assignment %s: stored version %s (%s bytes) by user %s",
            assignment.id, version, upload.size, principal.id,
        )

        uploader = self.store.get_user(principal.id)
        self.fanout.submission_received(assignment, doc_request, uploader)
        self.audit.record(
            UploadDocument(file_name=upload.file_name, request_title=doc_request.title, version=version),
            actor_id=principal.id,
            entity_id=document.id,
            ip_address=ip_address,
        )
        return document

    def _validate(self, upload, doc_request):
        if upload is None or not upload.file_name:
            raise ValidationError("No file provided")
        if upload.size == 0:
            raise ValidationError("Uploaded file is empty")

        if not validate_file_type(upload.mime_type, doc_request.accepted_formats):
            raise ValidationError(
                f"File type not accepted. Allowed formats: {doc_request.accepted_formats}"
            )
        if not validate_file_size(upload.size, doc_request.max_file_size_mb):
            raise ValidationError(
                f"File too large. Maximum size: {doc_request.max_file_size_mb}MB"
            )

    def _abort(self, key):
        try:
            self.store.rollback()
        except Exception:
            logger.exception("Rollback failed")
        self._discard(key)

    def _discard(self, key):
        try:
            self.file_store.delete(key)
        except Exception:
            logger.exception("Could not remove stored file %s", key)

    # =========================
    # Delete
    # =========================
    def delete_document(self, document_id, principal, ip_address=None):
        document = self.store.get_document(document_id)
        if document is None:
            raise NotFound("Document not found")
        assignment = document.assignment

        if not principal.can_delete_document(document):
            raise Forbidden("Access denied")
        if assignment.status == AssignmentStatus.APPROVED:
            raise InvalidState("Cannot delete approved documents")

        file_path = document.file_path
        file_name = document.file_name
        version = document.version
        was_latest = document.is_latest
        reverted = False

        try:
            self.store.delete_document(document)
            self.store.flush()

            if was_latest:
                previous = self.store.highest_version_document(assignment.id)
                if previous is not None:
                    previous.is_latest = True
                else:
                    state_machine.apply(assignment, Event.REVERT)
                    reverted = True

            self.store.commit()
        except DrmsError:
            self.store.rollback()
            raise
        except SQLAlchemyError:
            logger.exception("Delete transaction failed for document %s", document_id)
            self.store.rollback()
            raise DependencyFailure("Failed to delete the document")

        # Row is gone; an orphaned blob is only logged
        self._discard(file_path)

        self.audit.record(
            DeleteDocument(file_name=file_name, version=version, reverted_to_pending=reverted),
            actor_id=principal.id,
            entity_id=document_id,
            ip_address=ip_address,
        )
        return reverted
