class AssignmentError(Exception):
    pass


class AssignmentNotFoundError(AssignmentError):
    pass


class AssignmentAccessError(AssignmentError):
    pass


class AssignmentStateError(AssignmentError):
    pass
