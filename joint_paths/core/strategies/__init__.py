from .Strategy import StatusDict, StatusTuple, Strategy

__all__ = [
    "Strategy",
    "StatusDict",
    "StatusTuple",
]
