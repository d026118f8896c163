"""Checklists core library: persistent data layer for named checklists.

Public API re-exports for convenient imports:
    from checklists import ChecklistStore, Checklist, Item, ...
"""

# Workspace & paths
from checklists.workspace import (
    workspace_root,
    default_data_dir,
    store_path,
    preferences_path,
    reminders_path,
    settings_path,
    hooks_config_path,
)

# Configuration
from checklists.config import (
    Settings,
    load_settings,
    now_local,
    configure_logging,
)

# Errors
from checklists.errors import (
    ChecklistsError,
    StorageError,
    CorruptDataError,
    AllocatorExhausted,
    ValidationError,
    NotFoundError,
)

# Models
from checklists.models import (
    ICON_CATALOGUE,
    DEFAULT_ICON,
    Record,
    Item,
    Checklist,
    Store,
)

# Persistence, identity, ordering
from checklists.preferences import Preferences
from checklists.identity import IdentityAllocator, MAX_ITEM_ID
from checklists.sorting import sort_checklists
from checklists.persistence import PersistenceEngine

# Reminders
from checklists.reminders import (
    Reminder,
    ReminderRegistry,
    InMemoryReminderRegistry,
    FileReminderRegistry,
    ReminderReconciler,
)

# Events & hooks
from checklists.events import EventBus
from checklists.hooks import attach_hooks, run_hooks

# Facade
from checklists.store import ChecklistStore
