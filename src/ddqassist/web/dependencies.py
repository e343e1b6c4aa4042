"""Request access to the single in-memory controller."""

from __future__ import annotations

from fastapi import Request

from ddqassist.assist.controller import AssistController


def get_controller(request: Request) -> AssistController:
    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        controller = AssistController.from_config()
        request.app.state.controller = controller
    return controller
