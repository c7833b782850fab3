from __future__ import annotations

import logging

from flask import Flask, jsonify, request, session

from ..common.decorators import login_required, roles_required
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, ValidationError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/login", methods=["POST"], endpoint="login")
    def login():
        data = request.get_json(silent=True) or {}
        identifier = data.get("identifier") or data.get("username") or ""
        password = data.get("password") or ""
        role_s = data.get("role")

        try:
            role = Role(role_s) if role_s else None
        except ValueError:
            return jsonify({"message": "Unknown role"}), 400

        try:
            s_user = container.auth_service.authenticate(identifier, password, role=role)
        except (AuthenticationError, ValidationError) as e:
            return jsonify({"message": str(e)}), 401
        except Exception:
            logger.exception("Login failed for %s", identifier)
            return jsonify({"message": "System error while signing in"}), 500

        session.clear()
        session.permanent = bool(data.get("rememberMe"))
        session["user_id"] = s_user.user_id
        session["name"] = s_user.full_name
        session["role"] = s_user.role.value

        logger.info("User %s signed in as %s", s_user.user_id, s_user.role.value)
        return jsonify(s_user.to_public_dict())

    @app.route("/api/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"message": "Logged out successfully"})

    @app.route("/api/user", methods=["GET"], endpoint="me")
    @login_required
    def me():
        s_user = container.auth_service.get_session_user(int(session["user_id"]))
        if not s_user:
            session.clear()
            return jsonify({"message": "Not authenticated"}), 401
        return jsonify(s_user.to_public_dict())

    @app.route("/api/users", methods=["GET"], endpoint="admin_users")
    @roles_required(Role.ADMIN)
    def admin_users():
        role_s = request.args.get("role")
        try:
            role = Role(role_s) if role_s else None
        except ValueError:
            return jsonify({"message": "Unknown role"}), 400
        users = container.user_service.list_users(role=role)
        return jsonify([u.to_dict() for u in users])

    @app.route("/api/users", methods=["POST"], endpoint="add_user")
    @roles_required(Role.ADMIN)
    def add_user():
        data = request.get_json(silent=True) or {}
        try:
            try:
                role = Role(data.get("role") or Role.STUDENT.value)
            except ValueError:
                raise ValidationError("Unknown role")

            user = container.user_service.create_account(
                username=data.get("username", ""),
                email=data.get("email", ""),
                full_name=data.get("fullName", ""),
                password=data.get("password", ""),
                role=role,
            )
        except ValidationError as e:
            return jsonify({"message": str(e)}), 400
        except Exception:
            logger.exception("Creating user %s failed", data.get("username"))
            return jsonify({"message": "System error while creating the user"}), 500
        return jsonify(user.to_dict()), 201

    @app.route("/api/users/<int:user_id>", methods=["DELETE"], endpoint="delete_user")
    @roles_required(Role.ADMIN)
    def delete_user(user_id: int):
        try:
            container.user_service.delete_user(current_user_id=int(session["user_id"]), user_id=user_id)
        except AuthorizationError as e:
            return jsonify({"message": str(e)}), 403
        except ValidationError as e:
            return jsonify({"message": str(e)}), 404
        except Exception:
            logger.exception("Deleting user %s failed", user_id)
            return jsonify({"message": "System error while deleting the user"}), 500
        return "", 204
