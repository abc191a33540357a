from __future__ import annotations

import logging

from flask import Flask, jsonify, request, send_from_directory

from ..common.guards import current_user, make_login_required
from ..common.http import json_body
from ..container import Container
from ..core.exceptions import NotFoundError, ValidationError
from .model import to_public_profile

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    login_required = make_login_required(container.auth_service)

    @app.post("/auth/login")
    def login():
        data = json_body()
        result = container.auth_service.authenticate(str(data.get("email") or ""), str(data.get("password") or ""))
        return jsonify({"token": result.token, "user": to_public_profile(result.user)})

    @app.post("/auth/register")
    @login_required
    def register_user():
        user = container.user_service.register(current_user(), json_body())
        return jsonify({"message": "User registered successfully", "user": to_public_profile(user)}), 201

    if container.settings.debug:

        @app.post("/auth/debug-create-user")
        def debug_create_user():
            user = container.user_service.create_debug_user(json_body())
            return jsonify({"message": "User created successfully", "user": to_public_profile(user)}), 201

    @app.post("/auth/reset-password")
    def request_password_reset():
        data = json_body()
        token = container.password_reset_service.request_reset(str(data.get("email") or ""))
        body = {"message": "If your email is registered, you will receive password reset instructions"}
        if token and container.settings.expose_reset_token:
            body["resetToken"] = token
        return jsonify(body)

    @app.post("/auth/reset-password/<token>")
    def reset_password(token: str):
        data = json_body()
        container.password_reset_service.reset_password(token, str(data.get("password") or ""))
        return jsonify({"message": "Password has been reset successfully"})

    @app.get("/auth/me")
    @login_required
    def me():
        user = container.user_service.get_user(current_user().user_id)
        return jsonify({"user": to_public_profile(user)})

    @app.patch("/auth/me")
    @login_required
    def update_me():
        user = container.user_service.update_self(current_user().user_id, json_body())
        return jsonify({"profile": to_public_profile(user)})

    @app.get("/auth/users")
    @login_required
    def list_users():
        users = container.user_service.list_users(current_user(), role=request.args.get("role") or None)
        return jsonify({"users": [to_public_profile(u) for u in users]})

    @app.patch("/auth/users/<int:user_id>")
    @login_required
    def update_user(user_id: int):
        user = container.user_service.update_user(current_user(), user_id, json_body())
        return jsonify({"message": "User updated successfully", "user": to_public_profile(user)})

    @app.delete("/auth/users/<int:user_id>")
    @login_required
    def delete_user(user_id: int):
        container.user_service.delete_user(current_user(), user_id)
        return jsonify({"message": "User deleted successfully"})

    @app.post("/auth/users/profile/picture")
    @login_required
    def upload_profile_picture():
        upload = request.files.get("profilePicture")
        if upload is None or not upload.filename:
            raise ValidationError("No file uploaded")
        user = container.media_service.replace_avatar(current_user().user_id, upload.stream, upload.filename)
        return jsonify({"message": "Profile picture updated successfully", "profile": to_public_profile(user)})

    @app.post("/auth/upload-document")
    @login_required
    def upload_document():
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            raise ValidationError("No file uploaded")

        raw_user_id = (request.form.get("userId") or "").strip()
        try:
            target_id = int(raw_user_id) if raw_user_id else None
        except ValueError:
            raise ValidationError("userId must be an integer")

        user = container.media_service.add_document(
            current_user(),
            upload.stream,
            upload.filename,
            document_type=request.form.get("documentType"),
            user_id=target_id,
        )
        doc = user.documents[-1]
        return jsonify(
            {
                "message": "Document uploaded successfully",
                "documentInfo": {"fileName": doc.file_name, "filePath": doc.path, "type": doc.document_type},
            }
        )

    @app.get("/uploads/<category>/<name>")
    def serve_upload(category: str, name: str):
        path = container.media_store.resolve(f"/uploads/{category}/{name}")
        if not path.is_file():
            raise NotFoundError("File not found")
        return send_from_directory(path.parent.resolve(), path.name)
