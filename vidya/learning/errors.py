class LearningError(Exception):
    """Base class for domain errors raised by the learning services"""


class UserNotFoundError(LearningError):
    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class DuplicateMobileError(LearningError):
    def __init__(self, mobile_number: str):
        super().__init__("Mobile number already registered")
        self.mobile_number = mobile_number
