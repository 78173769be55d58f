from codecircle.db.repo.assignments_repo import AssignmentsRepo
from codecircle.db.repo.codes_repo import CodesRepo
from codecircle.db.repo.distribution_runs_repo import DistributionRunsRepo
from codecircle.db.repo.groups_repo import GroupsRepo
from codecircle.db.repo.job_runs_repo import JobRunsRepo
from codecircle.db.repo.members_repo import MembersRepo
from codecircle.db.repo.penalties_repo import PenaltiesRepo
from codecircle.db.repo.settings_repo import GlobalSettingsRepo

__all__ = [
    "AssignmentsRepo",
    "CodesRepo",
    "DistributionRunsRepo",
    "GlobalSettingsRepo",
    "GroupsRepo",
    "JobRunsRepo",
    "MembersRepo",
    "PenaltiesRepo",
]
