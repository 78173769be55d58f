class MembershipError(Exception):
    pass


class MemberNotFoundError(MembershipError):
    pass


class MemberAlreadyRegisteredError(MembershipError):
    pass


class GroupNotFoundError(MembershipError):
    pass


class SettingsFieldNotOverridableError(MembershipError):
    pass


class DisplayNameUnavailableError(MembershipError):
    pass
