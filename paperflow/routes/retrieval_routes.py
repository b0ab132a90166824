# paperflow/routes/retrieval_routes.py
from datetime import date

from flask import Blueprint, Response, request, jsonify, send_file, abort

from paperflow.extensions import object_store
from paperflow.utils.decorators import login_required, role_required
from paperflow.services.identity_service import current_caller_id
from paperflow.services.object_store import ArtifactLinkError
from paperflow.services.workflow_errors import WorkflowError
from paperflow.services.retrieval_service import (
    attempt_retrieval,
    distribution_board_as_csv,
    get_distribution_board,
)


retrieval_bp = Blueprint("retrieval", __name__)


def _window_arg():
    raw = request.args.get("date")
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        abort(400)


@retrieval_bp.route("/papers/<int:paper_id>/retrieve", methods=["POST"])
@login_required
@role_required("principal")
def retrieve_paper(paper_id):
    try:
        grant = attempt_retrieval(paper_id=paper_id, caller_id=current_caller_id())
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.http_status

    return jsonify(grant.to_dict())


@retrieval_bp.route("/distribution")
@login_required
@role_required("principal", "coe", "admin")
def distribution_board():
    return jsonify(get_distribution_board(_window_arg()))


@retrieval_bp.route("/distribution/export")
@login_required
@role_required("principal", "coe", "admin")
def download_distribution_csv():
    window = _window_arg()
    csv_buffer = distribution_board_as_csv(window)

    return Response(
        csv_buffer.getvalue(),
        mimetype="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename=distribution-{window or 'today'}.csv"
        }
    )


@retrieval_bp.route("/files/<token>")
def fetch_artifact(token):
    """
    Serves an artifact behind a signed, short-lived token issued on retrieval.
    """
    try:
        path = object_store.resolve_token(token)
    except ArtifactLinkError as e:
        return jsonify({"error": "invalid_link", "message": str(e)}), 410

    return send_file(path, as_attachment=True, download_name=path.name)
