from __future__ import annotations

import hmac
import logging
from dataclasses import asdict

from flask import Flask, jsonify, request

from ..common.permissions import PAYROLL_ADMINS
from ..common.retry import retry_once
from ..common.validators import parse_int
from ..common.web import company_id_of, current_actor, json_body, optional_date, optional_int, roles_required
from ..core.exceptions import AuthorizationError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/admin/salary/generate", methods=["POST"], endpoint="salary_generate")
    @roles_required(PAYROLL_ADMINS)
    def generate():
        company_id = company_id_of(current_actor())
        data = json_body()
        month = parse_int(data.get("month"), "month")
        year = parse_int(data.get("year"), "year")
        user_id = optional_int(data.get("userId"), "userId")

        if user_id is None:
            result = container.salary_service.auto_generate_salaries(
                company_id=company_id, month=month, year=year
            )
            return jsonify(asdict(result))

        generated = retry_once(
            container.salary_service.generate_salary,
            user_id=user_id,
            company_id=company_id,
            month=month,
            year=year,
        )
        return jsonify(asdict(generated)), 201 if generated.created else 200

    @app.route("/api/admin/salary/<int:salary_id>", methods=["GET"], endpoint="salary_statement")
    def statement(salary_id: int):
        actor = current_actor()
        result = retry_once(container.reconciliation_service.salary_statement, salary_id, actor)
        return jsonify(asdict(result))

    @app.route("/api/admin/salary/<int:salary_id>/recalculate", methods=["POST"], endpoint="salary_recalculate")
    @roles_required(PAYROLL_ADMINS)
    def recalculate(salary_id: int):
        salary = container.salary_service.recalculate_salary(salary_id, actor=current_actor())
        return jsonify(asdict(salary))

    @app.route("/api/admin/salary/<int:salary_id>/approve", methods=["POST"], endpoint="salary_approve")
    def approve(salary_id: int):
        salary = container.lifecycle_service.approve_salary(salary_id, current_actor())
        return jsonify(asdict(salary))

    @app.route("/api/admin/salary/<int:salary_id>/reject", methods=["POST"], endpoint="salary_reject")
    def reject(salary_id: int):
        data = json_body()
        salary = container.lifecycle_service.reject_salary(salary_id, current_actor(), data.get("reason"))
        return jsonify(asdict(salary))

    @app.route("/api/admin/salary/<int:salary_id>/mark-paid", methods=["POST"], endpoint="salary_mark_paid")
    def mark_paid(salary_id: int):
        data = json_body()
        salary = container.lifecycle_service.mark_paid(
            salary_id,
            current_actor(),
            paid_on=optional_date(data.get("date"), "date"),
            method=data.get("method"),
            reference=data.get("reference"),
        )
        return jsonify(asdict(salary))

    @app.route("/api/cron/salary-generate", methods=["POST"], endpoint="cron_salary_generate")
    def cron_generate():
        token = container.cron_secret_token
        if token:
            supplied = request.headers.get("Authorization", "")
            if not hmac.compare_digest(supplied, f"Bearer {token}"):
                raise AuthorizationError("Invalid cron token")

        run = container.scheduler.run()
        logger.info("Cron salary generation finished: %s companies", len(run.companies))
        return jsonify(asdict(run))
