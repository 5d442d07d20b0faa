"""Flask application exposing the check-in engine as a JSON API."""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, current_app, jsonify, request

from petcheckin.config import Settings
from petcheckin.engine.frontdesk import FrontDesk
from petcheckin.engine.models import ValidationError
from petcheckin.logging_config import setup_logging

logger = logging.getLogger(__name__)

FAILURE_STATUS = {
    "no_capacity": 409,
    "queue_empty": 409,
    "nothing_to_undo": 409,
    "not_found": 404,
}


def _respond(result: dict, success_status: int = 200) -> Any:
    if result.get("ok"):
        return jsonify(result), success_status
    return jsonify(result), FAILURE_STATUS.get(result.get("code"), 400)


def create_app(settings: Settings | None = None, test_config: dict | None = None) -> Flask:
    """Create and configure the Flask application."""

    app = Flask(__name__)
    app.config.from_mapping((settings or Settings()).as_config())
    if test_config:
        app.config.update(test_config)
    setup_logging(app.config["LOG_LEVEL"])

    desk = FrontDesk.open(
        database_path=app.config["DATABASE"],
        dog_spaces=app.config["DOG_SPACES"],
        cat_spaces=app.config["CAT_SPACES"],
    )
    app.extensions["frontdesk"] = desk
    logger.info(
        "Front desk ready with %s dog / %s cat spaces",
        app.config["DOG_SPACES"],
        app.config["CAT_SPACES"],
    )

    @app.errorhandler(ValidationError)
    def validation_failed(exc: ValidationError) -> Any:
        return jsonify({"ok": False, "code": "invalid", "message": str(exc)}), 400

    def payload() -> dict:
        data = request.get_json(silent=True)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data

    def section(data: dict, key: str) -> dict:
        value = data.get(key)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValidationError(f"{key} must be a JSON object")
        return value

    @app.post("/check-in")
    def check_in() -> Any:
        data = payload()
        result = desk.check_in(
            customer_input=section(data, "customerInput"),
            pet_input=section(data, "petInput"),
            days_stay=data.get("daysStay"),
            grooming_option=data.get("groomingOption"),
        )
        return _respond(result)

    @app.post("/check-out")
    def check_out() -> Any:
        data = payload()
        result = desk.check_out(
            owner_name=data.get("ownerName", ""),
            pet_name=data.get("petName", ""),
        )
        return _respond(result)

    @app.post("/pets")
    def add_pet() -> Any:
        data = payload()
        result = desk.add_pet(
            customer_input=section(data, "customerInput"),
            pet_input=section(data, "petInput"),
        )
        return _respond(result, 201)

    @app.get("/pets/search")
    def search_pets() -> Any:
        pet = desk.find_pet(request.args.get("name", ""))
        if pet is None:
            return jsonify({"ok": False, "code": "not_found", "message": "Pet not found"}), 404
        return jsonify({"ok": True, "pet": pet})

    @app.post("/queue/next")
    def process_next() -> Any:
        data = payload()
        result = desk.process_next(
            days_stay=data.get("daysStay", 1),
            grooming_option=data.get("groomingOption"),
        )
        return _respond(result)

    @app.post("/queue/all")
    def process_all() -> Any:
        data = payload()
        results = desk.process_all(
            days_stay=data.get("daysStay", 1),
            grooming_option=data.get("groomingOption"),
        )
        return jsonify(
            {
                "ok": True,
                "results": results,
                "confirmed": sum(1 for result in results if result["ok"]),
            }
        )

    @app.post("/undo")
    def undo() -> Any:
        result = desk.undo()
        if result["ok"]:
            return jsonify(result)
        return jsonify(result), 409

    @app.get("/state")
    def state() -> Any:
        return jsonify(desk.state())

    @app.get("/reports/revenue")
    def revenue() -> Any:
        return jsonify({"ok": True, "days": desk.revenue_by_day()})

    @app.post("/inventory/reset")
    def reset_inventory() -> Any:
        data = payload()
        snapshot = desk.reset_capacity(
            dog_spaces=data.get("dogSpaces", current_app.config["DOG_SPACES"]),
            cat_spaces=data.get("catSpaces", current_app.config["CAT_SPACES"]),
        )
        return jsonify({"ok": True, "inventory": snapshot})

    return app
