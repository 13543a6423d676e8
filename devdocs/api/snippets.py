from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, g, current_app

from devdocs.api.errors import NotFound
from devdocs.models import storage
from devdocs.models.snippet import Snippet
from devdocs.models.schemas.snippet import SnippetCreateSchema, SnippetUpdateSchema, SnippetOutSchema
from devdocs.utils.decorators import jwt_required

logger = logging.getLogger(__name__)

bp = Blueprint("snippets", __name__)

create_schema = SnippetCreateSchema()
update_schema = SnippetUpdateSchema()
out_schema = SnippetOutSchema()
out_list_schema = SnippetOutSchema(many=True)


def _owned_snippet_or_404(snippet_id: str) -> Snippet:
    session = storage.get_session()
    snippet = (
        session.query(Snippet)
        .filter(Snippet.id == snippet_id, Snippet.user_id == g.user_id)
        .first()
    )
    if snippet is None:
        raise NotFound("Not found")
    return snippet


@bp.post("")
@jwt_required()
def create_snippet():
    """
    Document a code snippet and save it to the caller's history
    ---
    tags: [Snippets]
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [language, code]
          properties:
            language: { type: string }
            code: { type: string }
            title: { type: string }
    responses:
      201: { description: Created, includes generated Markdown documentation }
      401: { description: Unauthorized }
      422: { description: Validation error }
    """
    data = create_schema.load(request.get_json(silent=True) or {})

    documentation = current_app.extensions["docgen"].generate(data["language"], data["code"])

    snippet = Snippet(
        user_id=g.user_id,
        language=data["language"],
        code=data["code"],
        title=data.get("title", ""),
        documentation=documentation,
    )
    storage.new(snippet)
    storage.save()
    logger.info("saved snippet %s for user %s", snippet.id, g.user_id)
    return jsonify({"data": out_schema.dump(snippet)}), 201


@bp.get("")
@jwt_required()
def list_snippets():
    """
    The caller's snippets, newest first
    ---
    tags: [Snippets]
    security:
      - Bearer: []
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
    """
    session = storage.get_session()
    rows = (
        session.query(Snippet)
        .filter(Snippet.user_id == g.user_id)
        .order_by(Snippet.created_at.desc(), Snippet.id.desc())
        .all()
    )
    return jsonify({"data": out_list_schema.dump(rows)}), 200


@bp.patch("/<snippet_id>")
@jwt_required()
def rename_snippet(snippet_id: str):
    """
    Rename a snippet
    ---
    tags: [Snippets]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: snippet_id
        type: string
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [title]
          properties:
            title: { type: string }
    responses:
      200: { description: OK }
      404: { description: Not found }
      422: { description: Validation error }
    """
    data = update_schema.load(request.get_json(silent=True) or {})
    snippet = _owned_snippet_or_404(snippet_id)
    snippet.title = data["title"]
    snippet.save()
    return jsonify({"data": {"id": snippet.id, "title": snippet.title}}), 200


@bp.delete("/<snippet_id>")
@jwt_required()
def delete_snippet(snippet_id: str):
    """
    Delete a snippet
    ---
    tags: [Snippets]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: snippet_id
        type: string
        required: true
    responses:
      200: { description: Deleted }
      404: { description: Not found }
    """
    snippet = _owned_snippet_or_404(snippet_id)
    snippet.delete()
    storage.save()
    return jsonify({"ok": True}), 200
