import pytest

from modules.evaluation_engine import fold_consistency, generalization_gaps
from modules.search_engine import CandidateResult, SearchResult


@pytest.fixture
def search_result():
    cands = (
        CandidateResult(index=0, params={'size': 2}, fold_scores=(0.3, 0.5), mean_score=0.4),
        CandidateResult(index=1, params={'size': 4}, fold_scores=(0.2, 0.2), mean_score=0.2),
    )
    return SearchResult(candidates=cands, best=cands[1], greater_is_better=False,
                        n_folds=2, seed=1, fold_sizes=(3, 3))


def test_fold_consistency(search_result):
    df = fold_consistency(search_result)

    assert list(df['candidate']) == [0, 1]
    assert list(df['params']) == ['size=2', 'size=4']
    assert df.loc[0, 'range'] == pytest.approx(0.2)
    assert df.loc[0, 'std'] == pytest.approx(0.1)
    assert df.loc[1, 'range'] == 0.0
    assert (df['folds'] == 2).all()


def test_generalization_gaps_only_shared_metrics():
    df = generalization_gaps({'misclassification_rate': 0.1, 'accuracy': 0.9},
                             {'misclassification_rate': 0.25})

    assert list(df.columns) == ['metric', 'train', 'holdout', 'gap']
    assert len(df) == 1
    assert df.loc[0, 'gap'] == pytest.approx(0.15)


def test_generalization_gaps_empty():
    df = generalization_gaps({}, {})
    assert df.empty
    assert list(df.columns) == ['metric', 'train', 'holdout', 'gap']
