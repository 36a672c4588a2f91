import numpy as np
import pytest

try:
    from hypothesis import given, settings
    from hypothesis import strategies as st
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    pytest.skip("Requires the hypothesis library", allow_module_level=True)

from graphreg.engine.selection import draw_folds, validate_folds


@settings(max_examples=50, deadline=None)
@given(st.data())
def test_drawn_folds_form_a_balanced_partition(data: st.DataObject) -> None:
    n = data.draw(st.integers(min_value=2, max_value=200))
    K = data.draw(st.integers(min_value=2, max_value=n))
    seed = data.draw(st.integers(min_value=0, max_value=2**32 - 1))
    folds = draw_folds(n, K, rng=seed)
    sizes = [len(f) for f in folds]
    assert len(folds) == K
    assert max(sizes) - min(sizes) <= 1
    assert np.array_equal(np.sort(np.concatenate(folds)), np.arange(n))
    # Drawn folds always pass validation.
    validate_folds(list(folds), n, K)
