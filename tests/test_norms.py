"""Tests for healthreport/norms.py"""

from healthreport.norms import (
    AGE_GROUPS,
    NORM_TABLE,
    age_group,
    get_demographic_norms,
    normalize_metrics,
    normalize_score,
    score_grade,
    weighted_average,
    z_to_percentile,
)


class TestNormTable:
    def test_every_metric_covers_every_age_group(self):
        for metric, by_gender in NORM_TABLE.items():
            assert set(by_gender) == {"male", "female"}, metric
            for rows in by_gender.values():
                assert len(rows) == len(AGE_GROUPS), metric
                assert all(std > 0 for _, std, _ in rows), metric

    def test_age_group(self):
        assert age_group(19) == "20-29"
        assert age_group(34) == "30-39"
        assert age_group(59) == "50-59"
        assert age_group(82) == "60+"

    def test_get_demographic_norms(self):
        norms = get_demographic_norms("restingHR", "male", 34)
        assert norms == {"mean": 68, "std_dev": 8, "sample_size": 750, "age_group": "30-39"}

    def test_gender_is_case_insensitive(self):
        assert get_demographic_norms("focusIndex", "Female", 25)["mean"] == 70

    def test_unknown_metric_or_gender(self):
        assert get_demographic_norms("spo2", "male", 30) is None
        assert get_demographic_norms("focusIndex", "other", 30) is None
        assert get_demographic_norms("focusIndex", None, 30) is None


class TestPercentiles:
    def test_z_to_percentile(self):
        assert z_to_percentile(0) == 50
        assert z_to_percentile(1) == 84
        assert z_to_percentile(-3) == 0

    def test_score_grade(self):
        assert score_grade(97) == "excellent"
        assert score_grade(80) == "good"
        assert score_grade(50) == "normal"
        assert score_grade(10) == "borderline"
        assert score_grade(2) == "attention"


class TestNormalizeScore:
    def test_at_the_mean(self):
        result = normalize_score(65, "focusIndex", "male", 34)
        assert result["percentile"] == 50
        assert result["grade"] == "normal"
        assert result["age_gender_adjusted"]

    def test_two_std_devs_above(self):
        result = normalize_score(91, "focusIndex", "male", 34)
        assert result["percentile"] == 98
        assert result["grade"] == "excellent"
        assert result["raw"] == 91

    def test_unknown_metric_passes_through_clamped(self):
        result = normalize_score(140, "spo2", "male", 34)
        assert result["standardized"] == 100
        assert not result["age_gender_adjusted"]

    def test_normalize_metrics_skips_non_numeric(self):
        metrics = {"focusIndex": 65, "note": "calm", "flag": True, "restingHR": 68.0}
        normalized = normalize_metrics(metrics, "male", 34)
        assert set(normalized) == {"focusIndex", "restingHR"}


class TestWeightedAverage:
    def test_combines_scores(self):
        a = {"raw": 60, "standardized": 50, "percentile": 50, "age_gender_adjusted": True}
        b = {"raw": 80, "standardized": 90, "percentile": 90, "age_gender_adjusted": False}
        result = weighted_average([(a, 1.0), (b, 3.0)])
        assert result == {
            "raw": 75.0,
            "standardized": 80,
            "percentile": 80,
            "grade": "good",
            "age_gender_adjusted": False,
        }

    def test_empty_or_zero_weight(self):
        assert weighted_average([]) is None
        a = {"raw": 1, "standardized": 1, "percentile": 1, "age_gender_adjusted": True}
        assert weighted_average([(a, 0.0)]) is None
