class CodeUploadError(Exception):
    pass


class CodeOwnerNotFoundError(CodeUploadError):
    pass


class CodeBatchAlreadyUploadedError(CodeUploadError):
    pass


class CodeBatchSizeError(CodeUploadError):
    def __init__(self, *, received: int, maximum: int) -> None:
        super().__init__(f"received {received} codes, expected 1..{maximum}")
        self.received = received
        self.maximum = maximum


class CodeTextInvalidError(CodeUploadError):
    pass
