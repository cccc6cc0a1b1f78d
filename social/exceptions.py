"""Domain errors raised by the social services and translated by the views."""


class Q5Error(Exception):
    """Base error. ``message`` is safe to show to the member."""

    status = 400
    default_message = "Something went wrong. Please try again later."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotAllowed(Q5Error):
    status = 403
    default_message = "You are not allowed to do that."


class InvalidTransition(Q5Error):
    status = 409
    default_message = "That request is no longer pending."


class ValidationFailed(Q5Error):
    status = 400
    default_message = "Please check the form and try again."
