from quizbot.middlewares.callback_debounce import CallbackDebounceMiddleware

__all__ = ["CallbackDebounceMiddleware"]
