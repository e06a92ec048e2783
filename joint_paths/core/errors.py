from __future__ import annotations

from loguru import logger


class JointError(Exception):
    """Base class for every failure raised by the joint position engine."""


class PreconditionViolation(JointError):
    pass


class InvariantViolation(JointError):
    pass


class ArithmeticFailure(JointError):
    pass


class DivideByZero(ArithmeticFailure, ZeroDivisionError):
    pass


class ArithmeticOverflow(ArithmeticFailure, OverflowError):
    pass


class InsufficientLiquidity(ArithmeticFailure):
    pass


class UnsupportedSwapTarget(JointError, ValueError):
    def __init__(self, token: str):
        self.token = token
        super().__init__(f"No swap leg for token {token}")


class CollaboratorFailure(JointError):
    def __init__(self, step: str, detail: str):
        self.step = step
        self.detail = detail
        super().__init__(f"{step} failed: {detail}")


class Unauthorized(JointError):
    def __init__(self, caller: str | None, role: str):
        self.caller = caller
        self.role = role
        super().__init__(f"{caller or '<anonymous>'} is not {role}")


def check_invariant(condition: bool, message: str) -> None:
    if not condition:
        logger.critical(f"INVARIANT VIOLATION: {message}")
        raise InvariantViolation(message)
