from codecircle.db.models.code_assignments import CodeAssignment
from codecircle.db.models.codes import Code
from codecircle.db.models.distribution_runs import DistributionRun
from codecircle.db.models.global_settings import GlobalSettings
from codecircle.db.models.groups import Group
from codecircle.db.models.job_runs import JobRun
from codecircle.db.models.members import Member
from codecircle.db.models.penalty_state import PenaltyState

__all__ = [
    "Code",
    "CodeAssignment",
    "DistributionRun",
    "GlobalSettings",
    "Group",
    "JobRun",
    "Member",
    "PenaltyState",
]
