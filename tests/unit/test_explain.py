"""
Unit tests for explain output.
"""

import json

from index_advisor.catalog import IndexDefinition
from index_advisor.planner import ExplainReporter, PlanEstimator, explain, explain_shape
from index_advisor.shape import parse_query


class TestExplainRecord:
    """Test the top-level explain keys."""

    def test_index_scan_record(self, registry, catalog):
        """Test the record for the ticket listing query."""
        shape = parse_query({
            "name": "ticket_listing",
            "equality": {"tenantId": "t1", "status": "open"},
            "sort": {"createdAt": -1},
            "limit": 20,
        })
        estimator = PlanEstimator(registry, catalog)

        record = explain(shape, estimator.estimate(shape))

        assert record["scanKind"] == "index-scan"
        assert record["indexUsed"] == "tenantId_1_status_1_createdAt_-1"
        assert record["inMemorySort"] is False
        assert record["estimatedExamined"] == 20
        assert record["queryShape"]["name"] == "ticket_listing"
        assert record["rejectedPlans"] == []

    def test_collection_scan_record(self, registry, catalog):
        """Test that a collection scan reports no index."""
        shape = parse_query({"equality": {"tenantId": "t1"}, "sort": {"updatedAt": -1}})

        record = explain_shape(PlanEstimator(registry, catalog), shape)

        assert record["scanKind"] == "collection-scan"
        assert record["indexUsed"] is None
        assert record["inMemorySort"] is True
        assert record["estimatedExamined"] == 1_000_000

    def test_record_is_json_serializable(self, registry, make_catalog, listing_index, text_index):
        """Test that every record survives json.dumps."""
        estimator = PlanEstimator(registry, make_catalog(listing_index, text_index))
        shapes = [
            parse_query({"equality": {"tenantId": 1, "status": 2}, "sort": {"createdAt": -1}}),
            parse_query({"text": "refund", "sort": {"score": {"$meta": "textScore"}}, "limit": 5}),
            parse_query({"range": {"createdAt": {"$gte": 1}}}),
        ]

        for shape in shapes:
            json.dumps(explain_shape(estimator, shape))

    def test_rejected_plans(self, registry, make_catalog):
        """Test that losing candidates are listed."""
        narrow = IndexDefinition.single("tenantId")
        wide = IndexDefinition.compound([("tenantId", 1), ("status", 1)])
        shape = parse_query({"equality": {"tenantId": 1, "status": 2}})

        record = explain_shape(PlanEstimator(registry, make_catalog(narrow, wide)), shape)

        assert record["rejectedPlans"] == [
            {
                "indexUsed": "tenantId_1",
                "matchedPrefix": 1,
                "inMemorySort": False,
                "estimatedExamined": 2000,
            }
        ]


class TestWinningPlan:
    """Test the winning-plan stage tree."""

    def test_limit_fetch_ixscan(self, registry, catalog):
        """Test LIMIT over FETCH over IXSCAN."""
        shape = parse_query({
            "equality": {"tenantId": "t1", "status": "open"},
            "sort": {"createdAt": -1},
            "limit": 20,
        })

        plan = explain_shape(PlanEstimator(registry, catalog), shape)["winningPlan"]

        assert plan["stage"] == "LIMIT"
        assert plan["limitAmount"] == 20
        fetch = plan["inputStage"]
        assert fetch["stage"] == "FETCH"
        assert fetch["inputStage"] == {
            "stage": "IXSCAN",
            "indexName": "tenantId_1_status_1_createdAt_-1",
            "keyPattern": {"tenantId": 1, "status": 1, "createdAt": -1},
            "matchedPrefix": 2,
            "direction": "forward",
        }

    def test_sort_over_collscan(self, registry, catalog):
        """Test SORT over COLLSCAN when no index serves the order."""
        shape = parse_query({"equality": {"tenantId": "t1"}, "sort": {"updatedAt": -1}})

        plan = ExplainReporter().render(shape, PlanEstimator(registry, catalog).estimate(shape))[
            "winningPlan"
        ]

        assert plan == {
            "stage": "SORT",
            "sortPattern": {"updatedAt": -1},
            "inputStage": {"stage": "COLLSCAN", "direction": "forward"},
        }

    def test_text_stage(self, registry, make_catalog, text_index):
        """Test the TEXT stage."""
        shape = parse_query({"text": "refund delayed"})

        plan = explain_shape(PlanEstimator(registry, make_catalog(text_index)), shape)["winningPlan"]

        assert plan == {
            "stage": "TEXT",
            "indexName": text_index.name,
            "terms": ["refund", "delayed"],
        }
