"""Failure kinds raised by the assistant services and mapped to HTTP statuses by the routers."""


class ChatServiceError(Exception):
    """A step whose failure aborts the whole chat turn."""

    step = "unknown"


class ConversationResolveError(ChatServiceError):
    step = "resolve_conversation"


class ConversationCreateError(ConversationResolveError):
    pass


class ConversationNotFoundError(ConversationResolveError):
    """The supplied conversation doesn't exist or belongs to another user."""


class ModelCallError(ChatServiceError):
    step = "invoke_model"


class AuthError(Exception):
    """The credential could not be resolved to an identity."""


class StorageError(Exception):
    """Object storage rejected or failed a request."""
