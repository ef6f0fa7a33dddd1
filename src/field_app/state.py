"""Client state: one slice per entity, updated only through reducers.

Every reducer returns a new ``Slice``; the previous one is never mutated,
so a reference held by a screen keeps showing what it was rendered from.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

SLICES = ('projects', 'photos', 'users', 'reports', 'tasks')

REQUEST = 'request'
SUCCESS = 'success'
FAILURE = 'failure'
ADD = 'add'
UPDATE = 'update'
REMOVE = 'remove'
SELECT = 'select'


@dataclass(frozen=True)
class Slice:
    """Request state and rows for one entity."""
    items: Tuple[dict, ...] = ()
    loading: bool = False
    error: Optional[str] = None
    selected_id: Optional[str] = None

    def get(self, item_id):
        for item in self.items:
            if item.get('id') == item_id:
                return item
        return None

    @property
    def selected(self):
        return self.get(self.selected_id) if self.selected_id else None

    def ids(self):
        return [item.get('id') for item in self.items]


@dataclass(frozen=True)
class Action:
    type: str
    slice: str
    payload: Any = None


def request(slice_name):
    return Action(REQUEST, slice_name)


def success(slice_name, items):
    return Action(SUCCESS, slice_name, list(items))


def failure(slice_name, error):
    return Action(FAILURE, slice_name, str(error))


def add(slice_name, item):
    return Action(ADD, slice_name, item)


def update(slice_name, item):
    return Action(UPDATE, slice_name, item)


def remove(slice_name, item_id):
    return Action(REMOVE, slice_name, item_id)


def select(slice_name, item_id):
    return Action(SELECT, slice_name, item_id)


def reduce_slice(state: Slice, action: Action) -> Slice:
    """Apply one action to a slice and return the resulting slice."""
    if action.type == REQUEST:
        return replace(state, loading=True, error=None)
    if action.type == SUCCESS:
        items = tuple(dict(item) for item in action.payload)
        selected_id = state.selected_id if any(i.get('id') == state.selected_id for i in items) else None
        return replace(state, items=items, loading=False, error=None, selected_id=selected_id)
    if action.type == FAILURE:
        return replace(state, loading=False, error=action.payload)
    if action.type == ADD:
        return replace(state, items=state.items + (dict(action.payload),), error=None)
    if action.type == UPDATE:
        item_id = action.payload.get('id')
        items = tuple(
            {**item, **action.payload} if item.get('id') == item_id else item
            for item in state.items
        )
        return replace(state, items=items, error=None)
    if action.type == REMOVE:
        items = tuple(item for item in state.items if item.get('id') != action.payload)
        selected_id = None if state.selected_id == action.payload else state.selected_id
        return replace(state, items=items, error=None, selected_id=selected_id)
    if action.type == SELECT:
        return replace(state, selected_id=action.payload)
    raise ValueError(f"Unknown action type: {action.type}")


def reduce(state: Dict[str, Slice], action: Action) -> Dict[str, Slice]:
    """Root reducer: only the slice named by the action changes."""
    if action.slice not in state:
        raise ValueError(f"Unknown slice: {action.slice}")
    new_state = dict(state)
    new_state[action.slice] = reduce_slice(state[action.slice], action)
    return new_state


def initial_state():
    return {name: Slice() for name in SLICES}


@dataclass
class Store:
    """Holds the current state and notifies subscribers after each dispatch."""
    state: Dict[str, Slice] = field(default_factory=initial_state)
    listeners: List[Callable] = field(default_factory=list)

    def __post_init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def __getitem__(self, slice_name):
        return self.state[slice_name]

    def dispatch(self, action):
        self.logger.debug(f"dispatch {action.slice}/{action.type}")
        self.state = reduce(self.state, action)
        for listener in list(self.listeners):
            listener(self.state, action)
        return self.state

    def subscribe(self, listener):
        """Register ``listener(state, action)``; returns an unsubscribe function."""
        self.listeners.append(listener)

        def unsubscribe():
            if listener in self.listeners:
                self.listeners.remove(listener)
        return unsubscribe
