from __future__ import annotations

import io

from flask import Flask, jsonify, request, send_file

from ..common.http import failure_response, permission_required, to_jsonable
from ..container import Container
from ..core.enums import ExportFormat, Permission, Reason
from ..core.result import invalid


def register(app: Flask, container: Container) -> None:
    exports = container.payroll_export_service

    def _args():
        start = request.args.get("start") or request.args.get("date_debut")
        end = request.args.get("end") or request.args.get("date_fin")
        if not start or not end:
            return None, failure_response(invalid(Reason.MISSING_FIELD, "start and end are required"))
        center_id, error = _center_id()
        if error:
            return None, error
        return (start, end, center_id), None

    def _center_id():
        raw_center = request.args.get("center_id")
        if not raw_center:
            return None, None
        try:
            return int(raw_center), None
        except ValueError:
            return None, failure_response(invalid(Reason.INVALID_VALUE, "center_id must be an integer", field="center_id"))

    def _format():
        try:
            return ExportFormat((request.args.get("format") or "xlsx").lower()), None
        except ValueError:
            return None, failure_response(invalid(Reason.INVALID_VALUE, "format must be xlsx or csv", field="format"))

    def _send(result):
        if not result.ok:
            return failure_response(result.error)
        doc = result.value
        return send_file(
            io.BytesIO(doc.content),
            mimetype=doc.mimetype,
            as_attachment=True,
            download_name=doc.filename,
        )

    @app.route("/api/fmpa/export-tta", methods=["GET"], endpoint="fmpa_export_tta")
    @permission_required(Permission.PAYROLL_EXPORT)
    def export_tta():
        args, error = _args()
        if error:
            return error
        result = exports.export_payroll(*args)
        if not result.ok:
            return failure_response(result.error)
        export = result.value
        return jsonify(
            {
                "success": True,
                "data": [r.as_dict() for r in export.rows],
                "summary": {
                    "start": export.start.isoformat(),
                    "end": export.end.isoformat(),
                    "center_id": export.center_id,
                    "rows": len(export.rows),
                    "total_amount": to_jsonable(export.total_amount),
                },
            }
        )

    @app.route("/api/fmpa/export-tta/download", methods=["GET"], endpoint="fmpa_export_tta_download")
    @permission_required(Permission.PAYROLL_EXPORT)
    def export_tta_download():
        args, error = _args()
        if error:
            return error
        fmt, error = _format()
        if error:
            return error
        return _send(exports.export_payroll_sheet(*args, fmt=fmt))

    @app.route("/api/fmpa/sessions/<int:session_id>/tta-sheet", methods=["GET"], endpoint="fmpa_session_tta_sheet")
    @permission_required(Permission.PAYROLL_EXPORT)
    def session_tta_sheet(session_id: int):
        fmt, error = _format()
        if error:
            return error
        return _send(exports.session_sheet_document(session_id, fmt))

    @app.route("/api/fmpa/reports/monthly", methods=["GET"], endpoint="fmpa_monthly_report")
    @permission_required(Permission.PAYROLL_EXPORT)
    def monthly_report():
        month = request.args.get("month") or request.args.get("mois")
        if not month:
            return failure_response(invalid(Reason.MISSING_FIELD, "month is required", field="month"))
        center_id, error = _center_id()
        if error:
            return error
        fmt, error = _format()
        if error:
            return error
        return _send(exports.monthly_report_document(month, center_id, fmt))
