from .redraw import NullRedraw, RedrawPort

__all__ = ["NullRedraw", "RedrawPort"]
