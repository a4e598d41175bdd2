from .ldu_matrix import LduMatrix

__all__ = ["LduMatrix"]
