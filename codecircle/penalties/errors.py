class PurgeIncompleteError(Exception):
    """Rows of a purged member survived the purge transaction."""

    def __init__(self, member_id: int, leftovers: dict[str, int]) -> None:
        super().__init__(f"member {member_id} purge left rows behind: {leftovers}")
        self.member_id = member_id
        self.leftovers = leftovers
