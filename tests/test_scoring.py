"""Tests for the suspicion scoring engine."""

import itertools

import pytest

from vibesniff.analyzer.features import NON_POST_PASSWORD_FORM, PageFeatures
from vibesniff.analyzer.scoring import SuspicionScorer, classify_risk, score_page
from vibesniff.analyzer.signals import Signals
from vibesniff.constants import NO_FINDINGS_REASON, RiskLevel


@pytest.fixture
def scorer():
    """Scorer with the default weights."""
    return SuspicionScorer()


def _features(**kwargs) -> PageFeatures:
    if kwargs.get("has_password_form"):
        kwargs.setdefault("password_input_count", 1)
        kwargs.setdefault("total_input_count", kwargs["password_input_count"])
    return PageFeatures(**kwargs)


class TestScenarios:
    """End-to-end scoring examples."""

    def test_new_domain_with_password_form_is_medium(self, scorer):
        result = scorer.score(_features(has_password_form=True), Signals(domain_age_days=3))

        assert result.score == 0.55
        assert result.risk_level is RiskLevel.MEDIUM
        assert result.reasons == (
            "Domain age is 3 days (suspicious if < 7)",
            "Contains password form",
        )
        assert [f.name for f in result.risk_factors] == ["New Domain", "Password Form"]

    def test_nothing_suspicious_is_low_with_fallback_reason(self, scorer):
        result = scorer.score(PageFeatures(), Signals())

        assert result.score == 0.0
        assert result.risk_level is RiskLevel.LOW
        assert result.reasons == (NO_FINDINGS_REASON,)
        assert result.risk_factors == ()

    def test_many_findings_clamp_to_one(self, scorer):
        features = _features(has_password_form=True, form_action_mismatch=True, suspicious_keyword_count=5)
        result = scorer.score(features, Signals(domain_age_days=3, tls_age_days=2))

        assert result.score == 1.0
        assert result.risk_level is RiskLevel.HIGH
        assert len(result.reasons) == 5
        assert sum(f.weight for f in result.risk_factors) == pytest.approx(1.15)


class TestRules:
    """Individual rule thresholds and reason text."""

    @pytest.mark.parametrize(
        "age,expected",
        [(0, 0.35), (6, 0.35), (7, 0.15), (29, 0.15), (30, 0.0), (3650, 0.0), (None, 0.0)],
    )
    def test_domain_age_branches_are_exclusive(self, scorer, age, expected):
        result = scorer.score(PageFeatures(), Signals(domain_age_days=age))
        assert result.score == expected
        assert len(result.risk_factors) == (0 if expected == 0 else 1)

    def test_recent_domain_reason(self, scorer):
        result = scorer.score(PageFeatures(), Signals(domain_age_days=12))
        assert result.reasons == ("Domain age is 12 days (somewhat new)",)
        assert result.risk_factors[0].name == "Recent Domain"
        assert result.risk_factors[0].observed_value == 12

    @pytest.mark.parametrize("age,fires", [(0, True), (6, True), (7, False), (None, False)])
    def test_certificate_age(self, scorer, age, fires):
        result = scorer.score(PageFeatures(), Signals(tls_age_days=age))
        assert (result.score == 0.2) is fires

    def test_external_hosts_threshold_is_exclusive(self, scorer):
        assert scorer.score(PageFeatures(external_host_count=8), Signals()).score == 0.0
        result = scorer.score(PageFeatures(external_host_count=9), Signals())
        assert result.score == 0.1
        assert result.reasons == ("High number of external hosts: 9 (suspicious if > 8)",)

    def test_keyword_threshold_is_exclusive(self, scorer):
        assert scorer.score(PageFeatures(suspicious_keyword_count=3), Signals()).score == 0.0
        result = scorer.score(PageFeatures(suspicious_keyword_count=4), Signals())
        assert result.reasons == ("High number of suspicious keywords: 4",)

    def test_form_pattern_reason_lists_patterns(self, scorer):
        result = scorer.score(PageFeatures(suspicious_form_patterns=[NON_POST_PASSWORD_FORM]), Signals())
        assert result.reasons == (f"Suspicious form patterns: {NON_POST_PASSWORD_FORM}",)
        assert result.score == 0.15

    def test_link_popup_and_iframe_rules(self, scorer):
        features = PageFeatures(
            suspicious_link_patterns=['Suspicious link text: "Click here"'],
            has_popup_or_redirect_script=True,
            suspicious_iframe_count=2,
        )
        result = scorer.score(features, Signals())

        assert result.reasons == (
            "Suspicious link patterns detected: 1",
            "Contains popup or redirect scripts",
            "Suspicious iframes detected: 2",
        )
        assert result.score == 0.3
        assert result.risk_level is RiskLevel.LOW

    def test_archive_age_does_not_affect_score(self, scorer):
        result = scorer.score(PageFeatures(), Signals(first_archived_days_ago=0))
        assert result.score == 0.0


class TestClassification:
    """Risk level thresholds."""

    @pytest.mark.parametrize(
        "score,level",
        [
            (0.0, RiskLevel.LOW),
            (0.4, RiskLevel.LOW),
            (0.40001, RiskLevel.MEDIUM),
            (0.7, RiskLevel.MEDIUM),
            (0.70001, RiskLevel.HIGH),
            (1.0, RiskLevel.HIGH),
        ],
    )
    def test_boundaries(self, score, level):
        assert classify_risk(score) is level

    def test_rounding_happens_before_classification(self, scorer):
        # 0.2 + 0.1 + 0.1 sums to 0.4000000000000001 in binary floating point.
        features = PageFeatures(
            external_host_count=9,
            has_popup_or_redirect_script=True,
            password_input_count=1,
            total_input_count=1,
            has_password_form=True,
        )
        result = scorer.score(features, Signals())
        assert result.score == 0.4
        assert result.risk_level is RiskLevel.LOW


class TestInvariants:
    """Properties that hold for every input."""

    TOGGLES = {
        "has_password_form": (False, True),
        "form_action_mismatch": (False, True),
        "suspicious_form_patterns": ((), ("x",)),
        "external_host_count": (0, 20),
        "suspicious_keyword_count": (0, 10),
        "has_popup_or_redirect_script": (False, True),
        "suspicious_iframe_count": (0, 1),
    }
    SIGNALS = (Signals(), Signals(domain_age_days=20), Signals(domain_age_days=1, tls_age_days=1))

    @classmethod
    def _all_feature_kwargs(cls):
        keys = list(cls.TOGGLES)
        for values in itertools.product(*(cls.TOGGLES[k] for k in keys)):
            yield dict(zip(keys, values))

    @classmethod
    def _all_feature_combinations(cls):
        for kwargs in cls._all_feature_kwargs():
            yield _features(**kwargs)

    def test_score_bounded_and_reasons_match_factors(self, scorer):
        for features in self._all_feature_combinations():
            for signals in self.SIGNALS:
                result = scorer.score(features, signals)
                assert 0.0 <= result.score <= 1.0
                assert result.reasons
                if result.risk_factors:
                    assert len(result.reasons) == len(result.risk_factors)
                else:
                    assert result.reasons == (NO_FINDINGS_REASON,)

    def test_adding_a_finding_never_lowers_the_score(self, scorer):
        for kwargs in self._all_feature_kwargs():
            base = _features(**kwargs)
            for signals in self.SIGNALS:
                base_score = scorer.score(base, signals).score
                for key, (off, on) in self.TOGGLES.items():
                    if kwargs[key] != off:
                        continue
                    worse = _features(**{**kwargs, key: on})
                    assert scorer.score(worse, signals).score >= base_score, key

    def test_worse_signals_never_lower_the_score(self, scorer):
        for features in self._all_feature_combinations():
            for older, newer in (
                (Signals(), Signals(domain_age_days=20)),
                (Signals(domain_age_days=20), Signals(domain_age_days=3)),
                (Signals(), Signals(tls_age_days=2)),
            ):
                assert scorer.score(features, newer).score >= scorer.score(features, older).score

    def test_scoring_is_idempotent(self, scorer):
        features = _features(has_password_form=True, suspicious_keyword_count=5)
        signals = Signals(domain_age_days=20)
        assert scorer.score(features, signals) == scorer.score(features, signals)
        assert score_page(features, signals) == scorer.score(features, signals)

    def test_result_to_dict(self, scorer):
        data = scorer.score(_features(has_password_form=True), Signals(domain_age_days=3)).to_dict()
        assert data["score"] == 0.55
        assert data["risk_level"] == "MEDIUM"
        assert data["risk_factors"][0] == {"name": "New Domain", "weight": 0.35, "observed_value": 3}


class TestWeightOverrides:
    """Configurable rule weights."""

    def test_override_changes_contribution(self):
        scorer = SuspicionScorer({"password_form": 0.5})
        result = scorer.score(_features(has_password_form=True), Signals())
        assert result.score == 0.5
        assert result.risk_level is RiskLevel.MEDIUM

    def test_defaults_are_not_mutated(self):
        SuspicionScorer({"password_form": 0.5})
        assert SuspicionScorer.DEFAULT_WEIGHTS["password_form"] == 0.20

    @pytest.mark.parametrize("weights", [{"password_form": 0}, {"password_form": 1.5}, {"nope": 0.1}])
    def test_invalid_overrides_rejected(self, weights):
        with pytest.raises(ValueError):
            SuspicionScorer(weights)

    def test_rule_order_is_fixed(self):
        names = [rule.name for rule in SuspicionScorer().rules]
        assert names == [
            "domain_age",
            "certificate_age",
            "password_form",
            "form_action_mismatch",
            "suspicious_forms",
            "external_hosts",
            "suspicious_keywords",
            "suspicious_links",
            "popup_redirect",
            "suspicious_iframes",
        ]
