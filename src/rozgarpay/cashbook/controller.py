from __future__ import annotations

from dataclasses import asdict

from flask import Flask, jsonify, request

from ..common.permissions import PAYROLL_ADMINS
from ..common.retry import retry_once
from ..common.validators import parse_enum
from ..common.web import company_id_of, current_actor, json_body, optional_date, optional_int, roles_required
from ..container import Container
from ..core import constants
from ..core.enums import BalanceScope, CashbookDirection, CashbookTransactionType, PaymentMode, Role
from .model import CashbookFilters

_BALANCE_ROLES = PAYROLL_ADMINS | {Role.ACCOUNTANT}


def register(app: Flask, container: Container) -> None:
    service = container.reconciliation_service

    @app.route("/api/admin/users/<int:user_id>/deductions", methods=["POST"], endpoint="user_deduction")
    def add_deduction(user_id: int):
        data = json_body()
        event = service.record_deduction(
            user_id=user_id,
            amount=data.get("amount"),
            on_date=optional_date(data.get("recordDate"), "recordDate"),
            description=data.get("description"),
            actor=current_actor(),
        )
        return jsonify(asdict(event)), 201

    @app.route("/api/admin/users/<int:user_id>/recover-payment", methods=["POST"], endpoint="user_recovery")
    def recover_payment(user_id: int):
        data = json_body()
        event = service.record_recovery(
            user_id=user_id,
            amount=data.get("amount"),
            on_date=optional_date(data.get("recoverDate"), "recoverDate"),
            reason=data.get("reason"),
            actor=current_actor(),
        )
        return jsonify(asdict(event)), 201

    @app.route("/api/admin/users/<int:user_id>/payments", methods=["POST"], endpoint="user_payment")
    def add_payment(user_id: int):
        data = json_body()
        event = service.record_payment(
            user_id=user_id,
            amount=data.get("amount"),
            on_date=optional_date(data.get("paymentDate"), "paymentDate"),
            actor=current_actor(),
            mode=data.get("mode"),
            description=data.get("description"),
            reference=data.get("reference"),
        )
        return jsonify(asdict(event)), 201

    @app.route("/api/admin/cashbook", methods=["GET"], endpoint="cashbook_list")
    def list_entries():
        args = request.args
        filters = CashbookFilters(
            start_date=optional_date(args.get("startDate"), "startDate"),
            end_date=optional_date(args.get("endDate"), "endDate"),
            transaction_type=parse_enum(CashbookTransactionType, args["type"], "type") if args.get("type") else None,
            direction=parse_enum(CashbookDirection, args["direction"], "direction") if args.get("direction") else None,
            payment_mode=parse_enum(PaymentMode, args["mode"], "mode") if args.get("mode") else None,
            user_id=optional_int(args.get("userId"), "userId"),
            search=(args.get("search") or "").strip() or None,
        )
        page = service.list_entries(
            current_actor(),
            filters,
            page=optional_int(args.get("page"), "page") or 1,
            limit=optional_int(args.get("limit"), "limit") or constants.DEFAULT_PAGE_SIZE,
        )
        return jsonify(asdict(page))

    @app.route("/api/admin/cashbook", methods=["POST"], endpoint="cashbook_create")
    def create_entry():
        data = json_body()
        entry = service.create_entry(
            current_actor(),
            transaction_type=data.get("transactionType"),
            direction=data.get("direction"),
            amount=data.get("amount"),
            description=data.get("description"),
            transaction_date=optional_date(data.get("transactionDate"), "transactionDate"),
            payment_mode=data.get("paymentMode"),
            user_id=optional_int(data.get("userId"), "userId"),
            reference=data.get("reference"),
            notes=data.get("notes"),
        )
        return jsonify(asdict(entry)), 201

    @app.route("/api/admin/cashbook/<int:entry_id>/reverse", methods=["POST"], endpoint="cashbook_reverse")
    def reverse_entry(entry_id: int):
        data = json_body()
        reversal = service.reverse_entry(
            entry_id, reason=data.get("reason"), notes=data.get("notes"), actor=current_actor()
        )
        return jsonify(asdict(reversal)), 201

    @app.route("/api/admin/cashbook/balance", methods=["GET"], endpoint="cashbook_balance")
    @roles_required(_BALANCE_ROLES)
    def balance():
        company_id = company_id_of(current_actor())
        args = request.args
        scope = args.get("scope")
        if not scope:
            summary = retry_once(service.get_balance_summary, company_id)
            return jsonify(asdict(summary))

        result = retry_once(
            service.get_balance,
            company_id,
            parse_enum(BalanceScope, scope, "scope"),
            user_id=optional_int(args.get("userId"), "userId"),
            month=optional_int(args.get("month"), "month"),
            year=optional_int(args.get("year"), "year"),
        )
        return jsonify(asdict(result))
