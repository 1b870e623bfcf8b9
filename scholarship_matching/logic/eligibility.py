"""
Eligibility Engine

Runs every criterion a scholarship defines against an applicant profile and
aggregates the checks into a pass/fail verdict and a 0-100 score.

Rules:
- Criteria the scholarship does not define are skipped, not failed.
- Overall verdict is the AND over required-importance checks only.
- Score = round(100 * passed / total); no checks at all means score 100, passed.
- A criterion that raises (e.g. a malformed custom condition) becomes a failed
  check with an error note; evaluation of the other criteria continues.
  Errored checks lower the score but never decide the verdict.
"""

import logging
from typing import Any, Dict, List, NamedTuple, Optional

from .conditions import (
    RangeCondition,
    BooleanCondition,
    ListCondition,
    RangeOperator,
    BooleanOperator,
    ListOperator,
    evaluate_condition,
    describe_condition,
    compile_custom_condition,
)
from .constants import CheckCategory, Importance, GWA_BEST, GWA_WORST
from .contracts import (
    ApplicantProfile,
    ScholarshipCriteria,
    CustomCondition,
    CheckResult,
    CheckSummary,
    EligibilityResult,
)
from .exceptions import MalformedConditionError
from .normalizers import (
    canonical_st_bracket,
    canonical_year_level,
    format_value,
    get_nested_value,
)

logger = logging.getLogger(__name__)


class PlannedCheck(NamedTuple):
    """A criterion resolved against one applicant, ready to evaluate."""
    criterion_id: str
    criterion: str
    category: str
    condition: Any
    actual: Any
    importance: str = Importance.REQUIRED.value
    applicant_display: Optional[str] = None
    required_display: Optional[str] = None


# Profile flag each "must not" requirement negates
STATUS_REQUIREMENTS = [
    ("must_not_have_other_scholarship", "has_existing_scholarship", "No Other Scholarship"),
    ("must_not_have_thesis_grant", "has_thesis_grant", "No Thesis Grant"),
    ("must_not_have_disciplinary_action", "has_disciplinary_action", "No Disciplinary Action"),
    ("must_not_have_failing_grade", "has_failing_grade", "No Failing Grade"),
    ("must_not_have_grade_of_4", "has_grade_of_4", "No Grade of 4"),
    ("must_not_have_incomplete_grade", "has_incomplete_grade", "No Incomplete Grade"),
]

# Profile flag each "must have" requirement checks
AFFIRMATIVE_REQUIREMENTS = [
    ("requires_approved_thesis", "has_approved_thesis_outline", "Approved Thesis Outline"),
    ("must_be_graduating", "is_graduating", "Graduating Student"),
]


# =============================================================================
# CRITERION PLANNING
# =============================================================================

def gwa_is_restricted(criteria: ScholarshipCriteria) -> bool:
    """A GWA range spanning the whole 1.0-5.0 scale imposes no restriction."""
    max_gwa = criteria.max_gwa if criteria.max_gwa is not None else GWA_WORST
    min_open = criteria.min_gwa is None or criteria.min_gwa <= GWA_BEST
    return not (max_gwa >= GWA_WORST and min_open)


def _range_plan(min_value: Optional[float], max_value: Optional[float]) -> Optional[RangeCondition]:
    if min_value is not None and max_value is not None:
        return RangeCondition(operator=RangeOperator.BETWEEN, min_value=min_value, max_value=max_value)
    if max_value is not None:
        return RangeCondition(operator=RangeOperator.LTE, value=max_value)
    if min_value is not None:
        return RangeCondition(operator=RangeOperator.GTE, value=min_value)
    return None


def plan_standard_checks(applicant: ApplicantProfile, criteria: ScholarshipCriteria) -> List[PlannedCheck]:
    """Build one planned check per criterion the scholarship defines."""
    plans: List[PlannedCheck] = []

    # Academic
    if gwa_is_restricted(criteria):
        low = criteria.min_gwa if criteria.min_gwa is not None else GWA_BEST
        high = criteria.max_gwa if criteria.max_gwa is not None else GWA_WORST
        plans.append(PlannedCheck(
            "gwa", "GWA Requirement", CheckCategory.ACADEMIC.value,
            RangeCondition(operator=RangeOperator.BETWEEN, min_value=low, max_value=high),
            applicant.gwa,
            applicant_display=f"{applicant.gwa:.2f}" if applicant.gwa is not None else None,
            required_display=f"{low:.2f} - {high:.2f}",
        ))

    if criteria.min_units_enrolled is not None:
        plans.append(PlannedCheck(
            "units_enrolled", "Minimum Units Enrolled", CheckCategory.ACADEMIC.value,
            RangeCondition(operator=RangeOperator.GTE, value=criteria.min_units_enrolled),
            applicant.units_enrolled,
        ))

    if criteria.min_units_passed is not None:
        plans.append(PlannedCheck(
            "units_passed", "Minimum Units Passed", CheckCategory.ACADEMIC.value,
            RangeCondition(operator=RangeOperator.GTE, value=criteria.min_units_passed),
            applicant.units_passed,
        ))

    if criteria.eligible_classifications:
        eligible = [canonical_year_level(c) for c in criteria.eligible_classifications]
        plans.append(PlannedCheck(
            "classification", "Year Level", CheckCategory.ACADEMIC.value,
            ListCondition(operator=ListOperator.IN, values=eligible),
            canonical_year_level(applicant.classification),
        ))

    if criteria.eligible_colleges:
        plans.append(PlannedCheck(
            "college", "College", CheckCategory.ACADEMIC.value,
            ListCondition(operator=ListOperator.IN, values=criteria.eligible_colleges, fuzzy=True),
            applicant.college,
        ))

    if criteria.eligible_courses:
        plans.append(PlannedCheck(
            "course", "Course", CheckCategory.ACADEMIC.value,
            ListCondition(operator=ListOperator.MATCHES_ANY, values=criteria.eligible_courses),
            applicant.course,
        ))

    if criteria.eligible_majors:
        plans.append(PlannedCheck(
            "major", "Major", CheckCategory.ACADEMIC.value,
            ListCondition(operator=ListOperator.MATCHES_ANY, values=criteria.eligible_majors),
            applicant.major,
        ))

    # Financial
    income_condition = _range_plan(criteria.min_annual_family_income, criteria.max_annual_family_income)
    if income_condition is not None:
        plans.append(PlannedCheck(
            "annual_family_income", "Annual Family Income", CheckCategory.FINANCIAL.value,
            income_condition,
            applicant.annual_family_income,
        ))

    if criteria.eligible_st_brackets:
        eligible = [canonical_st_bracket(b) for b in criteria.eligible_st_brackets]
        plans.append(PlannedCheck(
            "st_bracket", "ST Bracket", CheckCategory.FINANCIAL.value,
            ListCondition(operator=ListOperator.IN, values=eligible),
            canonical_st_bracket(applicant.st_bracket),
        ))

    # Location / demographic
    if criteria.eligible_provinces:
        plans.append(PlannedCheck(
            "province", "Province of Origin", CheckCategory.LOCATION.value,
            ListCondition(operator=ListOperator.MATCHES_ANY, values=criteria.eligible_provinces),
            applicant.province_of_origin,
        ))

    if criteria.eligible_citizenship:
        plans.append(PlannedCheck(
            "citizenship", "Citizenship", CheckCategory.DEMOGRAPHIC.value,
            ListCondition(operator=ListOperator.IN, values=criteria.eligible_citizenship),
            applicant.citizenship,
        ))

    # Status
    for flag, profile_field, label in STATUS_REQUIREMENTS:
        if getattr(criteria, flag):
            plans.append(PlannedCheck(
                flag, label, CheckCategory.STATUS.value,
                BooleanCondition(operator=BooleanOperator.IS_FALSE),
                getattr(applicant, profile_field),
            ))

    for flag, profile_field, label in AFFIRMATIVE_REQUIREMENTS:
        if getattr(criteria, flag):
            plans.append(PlannedCheck(
                flag, label, CheckCategory.STATUS.value,
                BooleanCondition(operator=BooleanOperator.IS_TRUTHY),
                getattr(applicant, profile_field),
            ))

    return plans


def plan_custom_check(applicant: ApplicantProfile, custom: CustomCondition, index: int) -> PlannedCheck:
    """
    Compile one administrator-defined condition.

    Raises:
        MalformedConditionError: the condition cannot be compiled
    """
    try:
        importance = Importance(custom.importance).value
    except ValueError as exc:
        raise MalformedConditionError(f"Unknown importance '{custom.importance}'") from exc
    try:
        category = CheckCategory(custom.category).value
    except ValueError:
        category = CheckCategory.CUSTOM.value

    condition = compile_custom_condition(custom)
    return PlannedCheck(
        f"custom_{index}",
        custom.name,
        category,
        condition,
        get_nested_value(applicant, custom.field_path),
        importance=importance,
    )


# =============================================================================
# EVALUATION
# =============================================================================

def run_check(plan: PlannedCheck) -> CheckResult:
    """Evaluate one planned check, turning evaluator errors into a failed result."""
    required_value = plan.required_display
    try:
        if required_value is None:
            required_value = describe_condition(plan.condition)
        outcome = evaluate_condition(plan.condition, plan.actual)
    except Exception as exc:
        logger.warning(f"⚠️ Criterion '{plan.criterion}' could not be evaluated: {exc}")
        return _error_result(plan.criterion_id, plan.criterion, plan.category, plan.importance, exc)

    notes = None
    if outcome is None:
        # missing applicant value: hard failure only for required checks
        passed = plan.importance != Importance.REQUIRED.value
        notes = "Not specified in profile"
    else:
        passed = bool(outcome)

    return CheckResult(
        criterion_id=plan.criterion_id,
        criterion=plan.criterion,
        passed=passed,
        category=plan.category,
        applicant_value=plan.applicant_display or format_value(plan.actual),
        required_value=required_value,
        importance=plan.importance,
        condition_kind=plan.condition.kind,
        notes=notes,
    )


def _declared_importance(custom: CustomCondition) -> str:
    try:
        return Importance(custom.importance).value
    except ValueError:
        return Importance.REQUIRED.value


def _error_result(criterion_id: str, criterion: str, category: str, importance: str, exc: Exception) -> CheckResult:
    return CheckResult(
        criterion_id=criterion_id,
        criterion=criterion,
        passed=False,
        category=category,
        required_value="",
        importance=importance,
        notes=f"Error: {exc}",
        error=True,
    )


def summarize_checks(checks: List[CheckResult]) -> EligibilityResult:
    """Aggregate check results into the overall verdict and score."""
    total = len(checks)
    passed_count = sum(1 for c in checks if c.passed)
    score = int(100 * passed_count / total + 0.5) if total else 100

    failed_required = [
        c.criterion for c in checks
        if c.importance == Importance.REQUIRED.value and not c.passed and not c.error
    ]

    by_category: Dict[str, CheckSummary] = {}
    by_importance: Dict[str, CheckSummary] = {}
    for check in checks:
        buckets = [(check.category, by_category)]
        if not check.error:
            buckets.append((check.importance, by_importance))
        for key, bucket in buckets:
            summary = bucket.setdefault(key, CheckSummary())
            summary.total += 1
            if check.passed:
                summary.passed += 1

    return EligibilityResult(
        passed=not failed_required,
        score=score,
        checks=checks,
        category_summaries=by_category,
        importance_summaries=by_importance,
        passed_count=passed_count,
        total_count=total,
        failed_required=failed_required,
    )


class EligibilityEngine:
    """
    Evaluates scholarship criteria against applicant profiles.

    Stateless; one instance can serve any number of concurrent callers.
    """

    def check(self, applicant: ApplicantProfile, criteria: ScholarshipCriteria) -> EligibilityResult:
        """
        Check an applicant against a scholarship's criteria.

        Args:
            applicant: Applicant profile
            criteria: Scholarship criteria, including custom conditions

        Returns:
            EligibilityResult with per-check details and summaries
        """
        checks = [run_check(plan) for plan in plan_standard_checks(applicant, criteria)]

        for index, custom in enumerate(criteria.custom_conditions):
            try:
                plan = plan_custom_check(applicant, custom, index)
            except MalformedConditionError as exc:
                logger.warning(f"⚠️ Malformed custom condition '{custom.name}': {exc}")
                checks.append(_error_result(
                    f"custom_{index}",
                    custom.name,
                    CheckCategory.CUSTOM.value,
                    _declared_importance(custom),
                    exc,
                ))
                continue
            checks.append(run_check(plan))

        result = summarize_checks(checks)
        logger.debug(
            f"Eligibility for {applicant.applicant_id or 'anonymous'}: "
            f"passed={result.passed} score={result.score} ({result.passed_count}/{result.total_count})"
        )
        return result


def check_eligibility(applicant: ApplicantProfile, criteria: ScholarshipCriteria) -> EligibilityResult:
    """Convenience wrapper around EligibilityEngine.check."""
    return EligibilityEngine().check(applicant, criteria)
