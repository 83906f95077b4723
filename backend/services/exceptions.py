"""Domain exceptions raised by the service layer."""


class NoLinkedItemsError(Exception):
    """The user has not linked any institution yet."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("No linked bank accounts found")
