from .search_stream import SearchStreamUseCase

__all__ = ["SearchStreamUseCase"]
