# paperflow/routes/paper_routes.py
from pathlib import Path

from flask import Blueprint, request, jsonify

from paperflow.utils.decorators import login_required, role_required
from paperflow.services.identity_service import current_caller_id
from paperflow.services.workflow_errors import WorkflowError
from paperflow.services.paper_transition_service import (
    attempt_transition,
    available_transition,
    rollback_paper,
)
from paperflow.services.artifact_service import replace_scrutinized_artifacts


papers_bp = Blueprint("papers", __name__)


def _truthy(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


# =========================================================
# APPROVAL CHAIN
# =========================================================

@papers_bp.route("/<int:paper_id>/action")
@login_required
def paper_action(paper_id):
    """
    The approve/lock action available to the signed-in user, if any.
    """
    try:
        action = available_transition(paper_id=paper_id, caller_id=current_caller_id())
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.http_status

    return jsonify({"action": action})


@papers_bp.route("/<int:paper_id>/transition", methods=["POST"])
@login_required
def transition_paper(paper_id):
    data = request.get_json(silent=True) or {}

    try:
        result = attempt_transition(
            paper_id=paper_id,
            acting_role=data.get("role"),
            confirmation_given=_truthy(data.get("confirm", False)),
            caller_id=current_caller_id(),
        )
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.http_status

    return jsonify(result.to_dict())


# =========================================================
# SCRUTINY: replace QP + scheme
# =========================================================

@papers_bp.route("/<int:paper_id>/artifacts", methods=["POST"])
@login_required
@role_required("boe")
def upload_scrutinized_files(paper_id):
    qp_file = request.files.get("qp_file")
    scheme_file = request.files.get("scheme_file")

    try:
        result = replace_scrutinized_artifacts(
            paper_id=paper_id,
            caller_id=current_caller_id(),
            question_paper=qp_file.read() if qp_file else b"",
            scheme=scheme_file.read() if scheme_file else b"",
            qp_extension=Path(qp_file.filename).suffix if qp_file and qp_file.filename else "docx",
            scheme_extension=Path(scheme_file.filename).suffix if scheme_file and scheme_file.filename else "docx",
        )
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.http_status

    return jsonify(result)


# =========================================================
# ROLLBACK (admin only)
# =========================================================

@papers_bp.route("/<int:paper_id>/rollback", methods=["POST"])
@login_required
@role_required("admin")
def rollback_paper_route(paper_id):
    data = request.get_json(silent=True) or {}

    try:
        result = rollback_paper(
            paper_id=paper_id,
            target_status=data.get("target_status"),
            reason=data.get("reason", ""),
            confirmation_given=_truthy(data.get("confirm", False)),
            caller_id=current_caller_id(),
        )
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.http_status

    return jsonify(result.to_dict())
