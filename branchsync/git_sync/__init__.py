"""Branch tracking and synchronization core for branchsync."""

from .branch_utils import TrackingRelationship, resolve_tracking, require_tracking
from .decision import SyncDecision, decide, decide_for_branch
from .facade import GitFacade, GitPythonFacade
from .manager import BranchSyncManager
from .relationship import RelationshipSummary, analyze_relationship, analyze_tracking
from .repository_sync import SyncOutcome, synchronize_branch
from .status import BranchReport, BranchState, collect_branch_status, format_branch_report
from .upstream_tracking import ProvisionAction, ProvisionResult, provision_tracking
from .utils import GitSyncResult

__all__ = [
    'TrackingRelationship',
    'resolve_tracking',
    'require_tracking',
    'SyncDecision',
    'decide',
    'decide_for_branch',
    'GitFacade',
    'GitPythonFacade',
    'BranchSyncManager',
    'RelationshipSummary',
    'analyze_relationship',
    'analyze_tracking',
    'SyncOutcome',
    'synchronize_branch',
    'BranchReport',
    'BranchState',
    'collect_branch_status',
    'format_branch_report',
    'ProvisionAction',
    'ProvisionResult',
    'provision_tracking',
    'GitSyncResult'
]
