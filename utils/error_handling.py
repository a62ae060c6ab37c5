import functools
import logging
from utils.exceptions import StatLearnException

def handle_engine_errors(operation_name: str):
    """Decorator for consistent error handling in engines."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except StatLearnException:
                # Search and validation errors reach the caller untouched
                raise
            except Exception as e:
                logger = args[0].logger if args and hasattr(args[0], 'logger') else logging.getLogger()
                logger.error(f"{operation_name} failed: {e}", exc_info=True)
                raise StatLearnException(f"{operation_name} failed: {str(e)}") from e
        return wrapper
    return decorator
