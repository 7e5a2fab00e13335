from .slack import SlackGateway

__all__ = ["SlackGateway"]
