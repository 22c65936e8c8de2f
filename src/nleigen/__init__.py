"""频率相关结构动力学本征问题求解包。"""

__all__ = [
    "operators",
    "solver",
    "io",
    "validation",
    "reporting",
]
