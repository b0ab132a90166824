# paperflow/services/workflow_errors.py


class WorkflowError(Exception):
    """Base class for every outcome the workflow reports back to a caller."""

    code = "workflow_error"
    http_status = 400

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        return {"error": self.code, "message": self.message, **self.details}


class NotFound(WorkflowError):
    code = "not_found"
    http_status = 404

    def __init__(self, paper_id):
        super().__init__(f"Paper #{paper_id} not found", paper_id=paper_id)


class IllegalTransition(WorkflowError):
    code = "illegal_transition"
    http_status = 409

    def __init__(self, paper_id, status, role, message=None):
        super().__init__(
            message or f"No action for role '{role}' on paper #{paper_id} in status '{status}'",
            paper_id=paper_id,
            status=status,
            role=role,
        )


class ConfirmationRequired(WorkflowError):
    code = "confirmation_required"
    http_status = 428

    def __init__(self, paper_id, prompt):
        super().__init__("Confirmation required", paper_id=paper_id, prompt=prompt)


class Unauthorized(WorkflowError):
    code = "unauthorized"
    http_status = 403


class NotReady(WorkflowError):
    code = "not_ready"
    http_status = 409

    def __init__(self, paper_id, reason):
        super().__init__(f"Paper #{paper_id} is not ready: {reason}", paper_id=paper_id)


class AlreadyRetrieved(WorkflowError):
    code = "already_retrieved"
    http_status = 409

    def __init__(self, subject_id, window_date=None):
        super().__init__(
            "A paper for this subject has already been downloaded",
            subject_id=subject_id,
            window_date=window_date.isoformat() if window_date else None,
        )
        self.subject_id = subject_id


class MissingArtifacts(WorkflowError):
    code = "missing_artifacts"
    http_status = 400


class StorageFailure(WorkflowError):
    code = "storage_failure"
    http_status = 503
