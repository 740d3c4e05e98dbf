from responsio.widget.controller import ChatController, WidgetState

__all__ = ["ChatController", "WidgetState"]
