import sys
from pathlib import Path
import unittest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(PROJECT_ROOT))

from leadforge.icp import IdealCustomerProfile
from leadforge.lead_score import grade_for_score, score_lead
from leadforge.models import Lead, SocialLinks


def _lead_with_raw_total(**overrides) -> Lead:
    """Lead with one social link, so the raw total is not rescaled."""
    fields = {
        "business_name": "Boundary Co",
        "social_links": SocialLinks(facebook="https://facebook.com/boundary"),
    }
    fields.update(overrides)
    return Lead(**fields)


class GradeBoundaryTests(unittest.TestCase):
    def test_grade_edges(self) -> None:
        cases = [
            (100, "A+"),
            (85, "A+"),
            (84, "A"),
            (75, "A"),
            (74, "B"),
            (65, "B"),
            (64, "C"),
            (55, "C"),
            (54, "D"),
            (45, "D"),
            (44, "F"),
            (0, "F"),
        ]
        for score, grade in cases:
            with self.subTest(score=score):
                self.assertEqual(grade_for_score(score), grade)

    def test_grade_uses_rounded_score(self) -> None:
        # 35 + 11.75 + 38 = 84.75, graded on the rounded 85
        icp = IdealCustomerProfile.from_dict({"industries": {"technology": 38}})
        lead = _lead_with_raw_total(
            email="info@boundary.io",
            email_valid=True,
            phone="512-555-0100",
            phone_valid=True,
            website="https://boundary.io",
            claimed=True,
            rating=4.5,
            category="Software company",
            social_links=SocialLinks(
                facebook="https://facebook.com/boundary",
                twitter="https://x.com/boundary",
                instagram="https://instagram.com/boundary",
            ),
        )
        result = score_lead(lead, icp)
        self.assertEqual(result.breakdown, {"dataQuality": 35, "engagement": 12, "firmographic": 38})
        self.assertEqual(result.score, 85)
        self.assertEqual(result.grade, "A+")


class RescaleBoundaryTests(unittest.TestCase):
    def test_rescaled_total_crosses_grade(self) -> None:
        # Without links the raw 71 becomes 71 / 95 * 100 = 74.7 -> 75 (A);
        # one link adds 1.25 but skips the rescale, leaving 72 (B)
        icp = IdealCustomerProfile.from_dict({"industries": {"technology": 34}})
        base = dict(
            email="info@boundary.io",
            email_valid=True,
            phone="512-555-0100",
            phone_valid=True,
            website="https://boundary.io",
            claimed=True,
            rating=3.5,
            category="Software company",
        )

        without_link = score_lead(Lead(business_name="Boundary Co", **base), icp)
        self.assertEqual(without_link.score, 75)
        self.assertEqual(without_link.grade, "A")

        with_link = score_lead(_lead_with_raw_total(**base), icp)
        self.assertEqual(with_link.score, 72)
        self.assertEqual(with_link.grade, "B")

    def test_score_never_exceeds_hundred(self) -> None:
        icp = IdealCustomerProfile.from_dict({
            "industries": {"technology": 40},
            "locations": {"North America": 40},
        })
        lead = Lead(
            business_name="Boundary Co",
            email="info@boundary.io",
            email_valid=True,
            phone="512-555-0100",
            phone_valid=True,
            website="https://boundary.io",
            claimed=True,
            rating=5,
            review_count=1000,
            category="Software company",
            address="Austin, TX",
        )
        self.assertEqual(score_lead(lead, icp).score, 100)


if __name__ == "__main__":
    unittest.main()
