"""Property tests: session store round-trip and overwrite semantics."""

from hypothesis import given, settings, strategies as st

from strategy_lab.pipeline.steps import StepGate
from strategy_lab.storage.session_store import InMemorySessionStore

NS = "strategyLab_backtestingData"

json_values = st.recursive(
    st.none()
    | st.booleans()
    | st.integers(min_value=-(2**53), max_value=2**53)
    | st.floats(allow_nan=False, allow_infinity=False)
    | st.text(max_size=20),
    lambda children: st.lists(children, max_size=5)
    | st.dictionaries(st.text(max_size=10), children, max_size=5),
    max_leaves=25,
)


@given(payload=json_values)
@settings(max_examples=200)
def test_put_get_round_trip(payload):
    store = InMemorySessionStore()
    store.put(NS, "session_1", payload)
    assert store.get(NS, "session_1").payload == payload


@given(first=json_values, second=json_values)
def test_overwrite_never_merges(first, second):
    store = InMemorySessionStore()
    store.put(NS, "session_1", first)
    store.put(NS, "session_1", first)
    assert store.get(NS, "session_1").payload == first
    store.put(NS, "session_1", second)
    assert store.get(NS, "session_1").payload == second


@given(
    imported=st.sets(
        st.sampled_from(["regime", "alphaSignal", "backtesting", "optimization", "riskAnalysis"])
    )
)
def test_gate_advances_iff_required_imported(imported):
    gate = StepGate()
    store = InMemorySessionStore()
    for step_id in imported:
        store.put(gate.get(step_id).storage_key, "session_1", {"step": step_id})
    state = gate.evaluate("session_1", store)
    assert state == gate.evaluate("session_1", store)
    expected = {"alphaSignal", "backtesting"} <= imported
    assert gate.can_advance(state) is expected
    assert state.all_required_satisfied is expected
