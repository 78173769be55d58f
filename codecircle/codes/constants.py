CODE_STATUS_ACTIVE = "active"
CODE_STATUS_SUSPENDED = "suspended"
CODE_STATUS_DISTRIBUTED = "distributed"

CODE_STATUSES = frozenset({CODE_STATUS_ACTIVE, CODE_STATUS_SUSPENDED, CODE_STATUS_DISTRIBUTED})

CODE_TEXT_MAX_LENGTH = 256
