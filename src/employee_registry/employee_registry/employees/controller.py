from __future__ import annotations

import io
import logging
from typing import Optional

from flask import Flask, jsonify, render_template, request, send_file, send_from_directory

from ..core.exceptions import DomainError, DuplicateError, NotFoundError
from ..container import Container
from ..photos.storage import PhotoUpload
from .service import page_bounds

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    def base_url() -> str:
        configured = app.config.get("PUBLIC_BASE_URL")
        if configured:
            return str(configured).rstrip("/")
        proto = (request.headers.get("X-Forwarded-Proto") or request.scheme or "http").split(",")[0].strip()
        host = (request.headers.get("X-Forwarded-Host") or request.host).split(",")[0].strip()
        return f"{proto}://{host}"

    def payload() -> dict:
        data = request.get_json(silent=True)
        if isinstance(data, dict):
            return data
        return request.form.to_dict()

    def uploaded_photo() -> Optional[PhotoUpload]:
        f = request.files.get("photo")
        if not f or not f.filename:
            return None
        return PhotoUpload(data=f.read(), filename=f.filename, content_type=f.mimetype or "")

    def fail(e: DomainError):
        body = {"success": False, "error": str(e), "category": e.category}
        if isinstance(e, DuplicateError):
            body["field"] = e.field.value
        if e.status_code >= 500:
            logger.error("%s %s failed [%s]: %s", request.method, request.path, e.category, e)
        return jsonify(body), e.status_code

    def crash(e: Exception):
        logger.exception("%s %s crashed", request.method, request.path)
        body = {"success": False, "error": "Internal server error", "category": "internal"}
        if bool(app.config.get("DEBUG", False)):
            body["details"] = str(e)
        return jsonify(body), 500

    @app.route("/api/employees", methods=["POST"], endpoint="create_employee")
    def create_employee():
        try:
            result = container.employee_service.create(payload(), base_url=base_url(), photo=uploaded_photo())
        except DomainError as e:
            return fail(e)
        except Exception as e:
            return crash(e)

        body = {
            "success": True,
            "partial": result.is_partial,
            "employee": result.record.to_dict(),
            "employee_id": result.identifier,
            "verify_url": result.verify_url,
            "qr_data_url": result.proofs.qr_data_url if result.proofs else None,
            "barcode_data_url": result.proofs.barcode_data_url if result.proofs else None,
            "photo_url": result.record.photo_url,
        }
        if result.proof_error:
            body["proof_error"] = result.proof_error
        if result.photo_error:
            body["photo_error"] = result.photo_error
        return jsonify(body), 201

    @app.route("/api/employees", methods=["GET"], endpoint="list_employees")
    def list_employees():
        try:
            args = request.args
            limit, offset = page_bounds(args.get("limit"), args.get("offset"))
            rows = container.employee_service.search(q=args.get("q", ""), limit=limit, offset=offset)
        except DomainError as e:
            return fail(e)
        except Exception as e:
            return crash(e)

        root = base_url()
        employees = []
        for r in rows:
            item = r.to_dict()
            item["verify_url"] = container.employee_service.verify_url(r.identifier, base_url=root)
            employees.append(item)
        return jsonify({"success": True, "employees": employees, "count": len(employees), "limit": limit, "offset": offset})

    @app.route("/api/employees/<employee_id>", methods=["GET"], endpoint="get_employee")
    def get_employee(employee_id: str):
        try:
            record = container.employee_service.get(employee_id)
            verify_url = container.employee_service.verify_url(record.identifier, base_url=base_url())
        except DomainError as e:
            return fail(e)
        except Exception as e:
            return crash(e)

        body = {"success": True, "employee": record.to_dict(), "verify_url": verify_url}
        try:
            proofs = container.employee_service.proofs_for(record.identifier, base_url=base_url())
            body["qr_data_url"] = proofs.qr_data_url
            body["barcode_data_url"] = proofs.barcode_data_url
        except DomainError as e:
            body["proof_error"] = str(e)
        return jsonify(body)

    @app.route("/api/employees/<employee_id>", methods=["PUT"], endpoint="update_employee")
    def update_employee(employee_id: str):
        try:
            record = container.employee_service.update(employee_id, payload(), photo=uploaded_photo())
        except DomainError as e:
            return fail(e)
        except Exception as e:
            return crash(e)

        verify_url = container.employee_service.verify_url(record.identifier, base_url=base_url())
        body = {"success": True, "employee": record.to_dict(), "verify_url": verify_url, "photo_url": record.photo_url}
        try:
            proofs = container.employee_service.proofs_for(record.identifier, base_url=base_url())
            body["qr_data_url"] = proofs.qr_data_url
            body["barcode_data_url"] = proofs.barcode_data_url
        except DomainError as e:
            body["proof_error"] = str(e)
        return jsonify(body)

    @app.route("/api/employees/<employee_id>", methods=["DELETE"], endpoint="delete_employee")
    def delete_employee(employee_id: str):
        try:
            container.employee_service.delete(employee_id)
        except DomainError as e:
            return fail(e)
        except Exception as e:
            return crash(e)
        return jsonify({"success": True, "message": "Deleted"})

    @app.route("/api/employees/<employee_id>/qr", methods=["GET"], endpoint="employee_qr")
    def employee_qr(employee_id: str):
        try:
            png = container.employee_service.qr_png(employee_id, base_url=base_url())
        except DomainError as e:
            return fail(e)
        except Exception as e:
            return crash(e)
        return send_file(io.BytesIO(png), mimetype="image/png", as_attachment=True, download_name=f"{employee_id}-qr.png")

    @app.route("/api/employees/<employee_id>/barcode", methods=["GET"], endpoint="employee_barcode")
    def employee_barcode(employee_id: str):
        try:
            png = container.employee_service.barcode_png(employee_id)
        except DomainError as e:
            return fail(e)
        except Exception as e:
            return crash(e)
        return send_file(
            io.BytesIO(png), mimetype="image/png", as_attachment=True, download_name=f"{employee_id}-barcode.png"
        )

    @app.route("/photos/<path:ref>", methods=["GET"], endpoint="employee_photo")
    def employee_photo(ref: str):
        return send_from_directory(container.photo_storage.root, ref)

    @app.route("/verify/<employee_id>", methods=["GET"], endpoint="verify_employee")
    def verify_employee(employee_id: str):
        try:
            record = container.employee_service.get(employee_id)
        except NotFoundError:
            return "<h2>Employee not found</h2>", 404
        except DomainError as e:
            logger.error("Verification page for %s failed [%s]: %s", employee_id, e.category, e)
            return "<h2>Server error</h2>", e.status_code
        except Exception:
            logger.exception("Verification page for %s crashed", employee_id)
            return "<h2>Server error</h2>", 500

        return render_template(
            "verify.html",
            employee=record,
            company_code=container.company_code,
            logo_url=app.config.get("COMPANY_LOGO_URL", ""),
        )
