"""Tests for budget/sankey.py: graph construction and "Other" bucketing."""
import pytest

from budget.departments import parse_department_tree
from budget.errors import DataValidationError
from budget.models import STAGE_DEPARTMENT, STAGE_HUB, STAGE_PROGRAM, STAGE_REVENUE
from budget.sankey import (
    HUB_ID,
    BucketingConfig,
    bucket_children,
    build_sankey,
    other_id,
)


def _tree(items: dict, root_id: str = "spending", allow_negative: bool = False):
    children = []
    for name, value in items.items():
        if isinstance(value, dict):
            children.append({"name": name, "children": [
                {"name": k, "amount": v} for k, v in value.items()]})
        else:
            children.append({"name": name, "amount": value})
    return parse_department_tree({"name": "Total", "children": children},
                                 root_id=root_id, allow_negative=allow_negative)


def _revenue(items: dict):
    return _tree(items, root_id="revenue", allow_negative=True)


class TestWorkedExample:
    """Ontario 2023: expenses {Health 1000, Education 800, Other 200}."""

    @pytest.fixture()
    def sankey(self):
        return build_sankey(
            _revenue({"Taxes": 1900, "Fees": 100}),
            _tree({"Health": 1000, "Education": 800, "Other": 200}),
        )

    def test_node_labels(self, sankey):
        assert {n.label for n in sankey.nodes} == {
            "Revenue", "Taxes", "Fees", "Government", "Health", "Education", "Other",
        }

    def test_links(self, sankey):
        labels = {n.id: n.label for n in sankey.nodes}
        links = {(labels[link.source], labels[link.target]): link.value
                 for link in sankey.links}
        assert links == {
            ("Taxes", "Government"): 1900,
            ("Fees", "Government"): 100,
            ("Government", "Health"): 1000,
            ("Government", "Education"): 800,
            ("Government", "Other"): 200,
        }

    def test_stages(self, sankey):
        stages = {n.label: n.stage for n in sankey.nodes}
        assert stages["Revenue"] == STAGE_REVENUE
        assert stages["Taxes"] == STAGE_REVENUE
        assert stages["Government"] == STAGE_HUB
        assert stages["Health"] == STAGE_DEPARTMENT

    def test_totals_balance(self, sankey):
        assert sankey.total_revenue == 2000
        assert sankey.total_spending == 2000
        assert sankey.surplus == 0
        assert sankey.imbalances() == {HUB_ID: 0}

    def test_no_synthetic_nodes(self, sankey):
        assert not any(n.synthetic for n in sankey.nodes)

    def test_to_dict(self, sankey):
        d = sankey.to_dict()
        assert len(d["nodes"]) == 7
        assert len(d["links"]) == 5
        assert d["surplus"] == 0


class TestBucketChildren:
    def test_top_k_kept(self):
        tree = _tree({f"D{i}": 100 - i for i in range(12)})
        bucket = bucket_children(tree.top_level(), tree.total, max_children=8, min_share=0.0)
        assert len(bucket.kept) == 8
        assert [r.name for r in bucket.kept] == [f"D{i}" for i in range(8)]
        assert bucket.other_value == sum(100 - i for i in range(8, 12))

    def test_below_threshold_folded(self):
        tree = _tree({"Big": 980, "Tiny1": 5, "Tiny2": 5, "Tiny3": 10})
        bucket = bucket_children(tree.top_level(), tree.total, max_children=8, min_share=0.01)
        assert [r.name for r in bucket.kept] == ["Big", "Tiny3"]
        assert bucket.other_value == 10

    def test_single_fold_stays_visible(self):
        tree = _tree({"Big": 995, "Tiny": 5})
        bucket = bucket_children(tree.top_level(), tree.total, max_children=8, min_share=0.01)
        assert [r.name for r in bucket.kept] == ["Big", "Tiny"]
        assert bucket.folded == ()

    def test_zero_total(self):
        tree = _tree({"A": 0, "B": 0})
        bucket = bucket_children(tree.top_level(), 0.0)
        assert len(bucket.kept) + len(bucket.folded) == 2


class TestBucketing:
    def test_hub_children_capped(self):
        spending = _tree({f"Dept {i}": 1000 - 10 * i for i in range(30)})
        sankey = build_sankey(_revenue({"Taxes": 20000}), spending,
                              BucketingConfig(max_children=8))
        out = [link for link in sankey.links if link.source == HUB_ID]
        assert len(out) <= 9
        other = sankey.node(other_id(HUB_ID))
        assert other.synthetic
        assert other.label == "Other"
        folded = sorted((1000 - 10 * i for i in range(30)), reverse=True)[8:]
        assert other.value == sum(folded)

    def test_other_link_value_equals_node(self):
        spending = _tree({f"Dept {i}": 10 for i in range(20)})
        sankey = build_sankey(_revenue({"Taxes": 200}), spending, BucketingConfig(max_children=5))
        link = next(link for link in sankey.links if link.target == other_id(HUB_ID))
        assert link.value == sankey.node(other_id(HUB_ID)).value == 150

    def test_revenue_sources_bucketed(self):
        revenue = _revenue({f"Source {i}": 100 for i in range(10)})
        sankey = build_sankey(revenue, _tree({"Health": 1000}), BucketingConfig(max_children=3))
        into_hub = [link for link in sankey.links if link.target == HUB_ID]
        assert len(into_hub) == 4
        assert sankey.node(other_id("revenue")).value == 700

    def test_other_named_department_does_not_collide(self):
        spending = _tree({"Other": 50, **{f"Dept {i}": 100 for i in range(10)}})
        sankey = build_sankey(_revenue({"Taxes": 1050}), spending, BucketingConfig(max_children=4))
        ids = [n.id for n in sankey.nodes]
        assert len(ids) == len(set(ids))

    def test_flow_conservation_on_hub(self):
        sankey = build_sankey(
            _revenue({f"S{i}": 10 + i for i in range(15)}),
            _tree({f"D{i}": 20 + i for i in range(15)}),
        )
        hub = sankey.node(HUB_ID)
        assert sankey.inflow(HUB_ID) == pytest.approx(sankey.total_revenue)
        assert sankey.outflow(HUB_ID) == pytest.approx(sankey.total_spending)
        assert hub.value == pytest.approx(max(sankey.total_revenue, sankey.total_spending))


class TestGraphProperties:
    def test_links_reference_nodes(self):
        sankey = build_sankey(
            _revenue({f"S{i}": i + 1 for i in range(20)}),
            _tree({f"D{i}": {f"P{j}": j + 1 for j in range(12)} for i in range(20)}),
            BucketingConfig(include_programs=True),
        )
        ids = sankey.node_ids()
        for link in sankey.links:
            assert link.source in ids
            assert link.target in ids

    def test_deficit_rendered_as_is(self):
        sankey = build_sankey(_revenue({"Taxes": 800}), _tree({"Health": 1000}))
        assert sankey.surplus == -200
        assert sankey.node(HUB_ID).value == 1000
        assert sankey.imbalances()[HUB_ID] == -200

    def test_non_positive_sources_not_drawn(self):
        sankey = build_sankey(_revenue({"Taxes": 1000, "Adjustment": -50, "Nil": 0}),
                              _tree({"Health": 950}))
        labels = {n.label for n in sankey.nodes}
        assert "Adjustment" not in labels
        assert "Nil" not in labels
        assert all(link.value >= 0 for link in sankey.links)
        assert sankey.total_revenue == 1000

    def test_programs_only_when_requested(self):
        spending = _tree({"Health": {"Hospitals": 600, "OHIP": 400}, "Education": 800})
        revenue = _revenue({"Taxes": 1800})
        plain = build_sankey(revenue, spending)
        assert not any(n.stage == STAGE_PROGRAM for n in plain.nodes)

        detailed = build_sankey(revenue, spending, BucketingConfig(include_programs=True))
        programs = [n for n in detailed.nodes if n.stage == STAGE_PROGRAM]
        assert {n.label for n in programs} == {"Hospitals", "OHIP"}
        assert detailed.outflow("spending/health") == 1000
        assert detailed.imbalances()["spending/health"] == 0

    def test_duplicate_node_id_across_trees(self):
        revenue = parse_department_tree(
            {"id": "revenue", "name": "Rev", "children": [{"id": "shared", "name": "A", "amount": 1}]},
            root_id="revenue")
        spending = parse_department_tree(
            {"id": "spending", "name": "Exp", "children": [{"id": "shared", "name": "B", "amount": 1}]})
        with pytest.raises(DataValidationError, match="duplicate"):
            build_sankey(revenue, spending)

    def test_empty_trees(self):
        sankey = build_sankey(_revenue({}), _tree({}))
        assert [n.id for n in sankey.nodes] == ["revenue", HUB_ID]
        assert sankey.links == ()


class TestBucketingConfig:
    def test_defaults(self):
        cfg = BucketingConfig()
        assert cfg.max_children == 8
        assert cfg.min_share == 0.01

    @pytest.mark.parametrize("kwargs", [{"max_children": 0}, {"min_share": 1.0}, {"min_share": -0.1}])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            BucketingConfig(**kwargs)
