"""Tests for the client store and reducers."""
import pytest
from src.field_app import state
from src.field_app.state import Slice, Store, reduce, reduce_slice, initial_state


def loaded(*items):
    return reduce_slice(Slice(), state.success('projects', items))


def test_initial_state_has_every_slice():
    s = initial_state()
    assert set(s) == {'projects', 'photos', 'users', 'reports', 'tasks'}
    assert all(sl == Slice() for sl in s.values())


def test_request_success_failure_cycle():
    sl = reduce_slice(Slice(error='old'), state.request('projects'))
    assert sl.loading and sl.error is None

    sl = reduce_slice(sl, state.success('projects', [{'id': 'a'}]))
    assert not sl.loading
    assert sl.ids() == ['a']

    sl = reduce_slice(sl, state.failure('projects', ValueError('offline')))
    assert sl.error == 'offline'
    assert not sl.loading
    # A failed refresh keeps the rows already shown
    assert sl.ids() == ['a']


def test_reducers_never_mutate_previous_slice():
    before = loaded({'id': 'a', 'name': 'A'}, {'id': 'b', 'name': 'B'})
    snapshot = before.items

    after = reduce_slice(before, state.add('projects', {'id': 'c'}))
    after = reduce_slice(after, state.update('projects', {'id': 'a', 'name': 'A2'}))
    after = reduce_slice(after, state.remove('projects', 'b'))

    assert before.items is snapshot
    assert before.ids() == ['a', 'b']
    assert before.get('a')['name'] == 'A'
    assert after.ids() == ['a', 'c']
    assert after.get('a')['name'] == 'A2'


def test_success_copies_payload_rows():
    row = {'id': 'a', 'name': 'A'}
    sl = loaded(row)
    row['name'] = 'changed'
    assert sl.get('a')['name'] == 'A'


def test_remove_exactly_one_id():
    sl = loaded({'id': 'a'}, {'id': 'b'}, {'id': 'c'})
    sl = reduce_slice(sl, state.remove('projects', 'b'))
    assert sl.ids() == ['a', 'c']
    assert reduce_slice(sl, state.remove('projects', 'zzz')).ids() == ['a', 'c']


def test_update_merges_fields():
    sl = loaded({'id': 'a', 'name': 'A', 'city': 'Salem'})
    sl = reduce_slice(sl, state.update('projects', {'id': 'a', 'name': 'New'}))
    assert sl.get('a') == {'id': 'a', 'name': 'New', 'city': 'Salem'}


def test_selection():
    sl = loaded({'id': 'a'}, {'id': 'b'})
    sl = reduce_slice(sl, state.select('projects', 'b'))
    assert sl.selected == {'id': 'b'}

    # Still present after a reload: selection kept
    assert reduce_slice(sl, state.success('projects', [{'id': 'b'}])).selected_id == 'b'
    # Gone after a reload: selection cleared
    assert reduce_slice(sl, state.success('projects', [{'id': 'a'}])).selected_id is None
    # Removing the selected row clears it
    assert reduce_slice(sl, state.remove('projects', 'b')).selected is None


def test_unknown_action_and_slice():
    with pytest.raises(ValueError, match='Unknown action type'):
        reduce_slice(Slice(), state.Action('explode', 'projects'))
    with pytest.raises(ValueError, match='Unknown slice'):
        reduce(initial_state(), state.request('weather'))


def test_root_reducer_only_touches_named_slice():
    before = initial_state()
    after = reduce(before, state.add('tasks', {'id': 't1'}))
    assert after is not before
    assert after['tasks'].ids() == ['t1']
    assert before['tasks'].ids() == []
    assert after['photos'] is before['photos']


def test_store_dispatch_and_subscribe():
    store = Store()
    seen = []
    unsubscribe = store.subscribe(lambda s, action: seen.append((action.type, s['projects'].ids())))

    store.dispatch(state.add('projects', {'id': 'p1'}))
    assert store['projects'].ids() == ['p1']
    assert seen == [('add', ['p1'])]

    unsubscribe()
    store.dispatch(state.add('projects', {'id': 'p2'}))
    assert len(seen) == 1
    unsubscribe()
