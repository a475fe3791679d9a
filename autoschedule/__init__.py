"""autoschedule — task auto-scheduling core.

Public API re-exports for convenient imports:
    from autoschedule import TaskScheduler, InMemoryStore, resolve_availability, ...
"""

# Workspace & configuration
from autoschedule.workspace import (
    workspace_root,
    get_user_timezone,
    settings_path,
    working_hours_path,
    tasks_path,
    time_blocks_path,
    completions_path,
)
from autoschedule.config import SchedulerSettings, TypeRatePrior, load_settings
from autoschedule.clock import Clock, FixedClock, SystemClock

# Models
from autoschedule.models import (
    AvailabilitySlot,
    ProductivityPattern,
    Suggestion,
    Task,
    TaskCompletion,
    TimeBlock,
    TimeRange,
    WorkingHours,
    format_instant,
    parse_instant,
    validate_task,
)

# Errors
from autoschedule.errors import (
    BlockConflict,
    DependenciesIncomplete,
    DependencyCycle,
    NoAvailability,
    NoSuitableSlot,
    PersistenceFailed,
    RetrievalFailed,
    SchedulingError,
    TaskNotFound,
)

# Storage
from autoschedule.storage import InMemoryStore, SchedulingStore, WorkspaceStore

# Engines
from autoschedule.availability import resolve_availability, subtract_intervals
from autoschedule.priority import compute_task_priority_score, dependency_order, rank_tasks
from autoschedule.scheduler import BatchResult, TaskScheduler, select_earliest_fit
from autoschedule.heuristic import (
    AdaptiveScheduler,
    build_productivity_model,
    choose_optimal_hour,
    expected_duration,
    suggest_time_block,
)
