import numpy as np
import pytest

from pedsim.analytics import TimingSample, TravelTimeReport, parse_results


def _samples(durations, group=0):
    return [TimingSample(d, group, 10.0 + i) for i, d in enumerate(durations)]


def test_parse_results_without_trim():
    total, mean, std = parse_results(_samples([10.0, 20.0, 30.0]))

    assert total == pytest.approx(60.0)
    assert mean == pytest.approx(20.0)
    assert std == pytest.approx(np.sqrt(200.0 / 3.0))


def test_parse_results_trims_both_ends():
    """Outliers at the start and end of the run are dropped before averaging."""
    samples = _samples([100.0, 18.0, 19.0, 20.0, 500.0])

    total, mean, std = parse_results(samples, trim=1)

    assert total == pytest.approx(57.0)
    assert mean == pytest.approx(19.0)
    assert std == pytest.approx(np.sqrt(2.0 / 3.0))


def test_parse_results_accepts_plain_tuples():
    total, mean, std = parse_results([(4.0, 1, 1.0), (4.0, 0, 2.0)])
    assert (total, mean, std) == (8.0, 4.0, 0.0)


def test_parse_results_rejects_over_trimming():
    with pytest.raises(ValueError):
        parse_results(_samples([1.0, 2.0, 3.0, 4.0]), trim=2)
    with pytest.raises(ValueError):
        parse_results([], trim=0)
    with pytest.raises(ValueError):
        parse_results(_samples([1.0, 2.0]), trim=-1)


def test_report_group_means_use_all_samples():
    samples = _samples([10.0, 12.0], group=0) + _samples([20.0], group=1)

    report = TravelTimeReport(120.0, 3, samples)

    assert report.group_means() == {0: pytest.approx(11.0), 1: pytest.approx(20.0)}
    assert report.mean == pytest.approx(14.0)


def test_report_target_check():
    results = (60.0, 3, _samples([18.0, 19.0, 20.0]))

    near = TravelTimeReport.from_results(results, target=18.57, tolerance=3.0)
    far = TravelTimeReport.from_results(results, target=30.0, tolerance=3.0)
    untargeted = TravelTimeReport.from_results(results)

    assert near.within_target() is True
    assert far.within_target() is False
    assert untargeted.within_target() is None


def test_report_summary_text():
    results = (7200.0, 4, _samples([15.0, 18.0, 19.0, 40.0]))
    report = TravelTimeReport.from_results(results, trim=1, target=18.57, tolerance=3.0)

    text = report.summary()

    assert "TRAVEL TIME SUMMARY REPORT" in text
    assert "Finished Pedestrians: 4" in text
    assert "Simulation Time: 2.00 hours" in text
    assert "Average: 18.50 ± 0.50s" in text
    assert "Within Target: yes" in text
