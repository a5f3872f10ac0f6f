from .reevaluation_routes import create_reevaluation_routes, register_error_handlers

__all__ = ["create_reevaluation_routes", "register_error_handlers"]
