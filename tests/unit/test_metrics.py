import numpy as np
import pytest

from neuralnet.core.errors import InvalidConfiguration, InvalidInput
from neuralnet.core.matrix import Matrix
from neuralnet.training.metrics import (
    Evaluator,
    accuracy,
    class_indices,
    classification_report,
    compute_metrics,
    confusion_matrix,
    default_metrics,
)

PREDICTIONS = [[0.9, 0.1], [0.2, 0.8], [0.6, 0.4]]
TARGETS = [[1.0, 0.0], [0.0, 1.0], [0.0, 1.0]]


def test_accuracy_counts_argmax_matches():
    assert accuracy(PREDICTIONS, TARGETS) == pytest.approx(2 / 3)
    assert Evaluator().accuracy(Matrix(PREDICTIONS), Matrix(TARGETS)) == pytest.approx(2 / 3)


def test_single_column_outputs_use_threshold():
    np.testing.assert_array_equal(class_indices([[0.2], [0.7], [0.5]]), [0, 1, 1])
    assert accuracy([[0.2], [0.7]], [[0.0], [0.0]]) == pytest.approx(0.5)


def test_confusion_matrix_rows_are_true_classes():
    counts = confusion_matrix(PREDICTIONS, TARGETS)
    np.testing.assert_array_equal(counts, [[1, 0], [1, 1]])


def test_classification_report_macro_scores():
    report = classification_report(PREDICTIONS, TARGETS)
    assert report.precision == pytest.approx([0.5, 1.0])
    assert report.recall == pytest.approx([1.0, 0.5])
    assert report.f1 == pytest.approx([2 / 3, 2 / 3])
    assert report.support == [1, 2]
    assert report.macro_f1 == pytest.approx(2 / 3)


def test_absent_class_scores_zero_instead_of_nan():
    report = classification_report([[1.0, 0.0, 0.0]], [[1.0, 0.0, 0.0]], num_classes=3)
    assert report.precision == [1.0, 0.0, 0.0]
    assert report.recall == [1.0, 0.0, 0.0]


def test_regression_metrics():
    preds = [[1.0], [2.0], [3.0]]
    targets = [[1.0], [2.0], [5.0]]
    metrics = compute_metrics(default_metrics("regression"), preds, targets)
    assert metrics["mae"] == pytest.approx(2 / 3)
    assert metrics["rmse"] == pytest.approx(np.sqrt(4 / 3))
    assert metrics["r2"] < 1.0


def test_sample_count_mismatch_is_invalid_input():
    with pytest.raises(InvalidInput):
        accuracy(PREDICTIONS, TARGETS[:2])


def test_unknown_metric_is_rejected():
    with pytest.raises(InvalidConfiguration):
        compute_metrics(["auc"], PREDICTIONS, TARGETS)
    with pytest.raises(InvalidConfiguration):
        default_metrics("ranking")


def test_evaluator_defaults_follow_task_type():
    result = Evaluator("multiclass").evaluate(PREDICTIONS, TARGETS)
    assert set(result) == {"accuracy", "precision", "recall", "f1"}
    assert Evaluator("regression").metric_names == ["mae", "rmse", "r2"]
