from __future__ import annotations

from app.models.provider import SearchHit
from app.models.report import SOURCE_TIER_RANK, SourceTier
from app.services.source_tiers import (
    citation_from_hit,
    citation_from_source_ref,
    classify_source_tier,
    extract_doi,
    extract_pubmed_id,
)


def test_tier_precedence_first_rule_wins():
    # An FDA page about a randomized trial is still an FDA label source.
    assert (
        classify_source_tier("https://www.fda.gov/drugs/label", "Randomized controlled trial results")
        == SourceTier.FDA_LABEL
    )
    assert classify_source_tier("https://pubmed.ncbi.nlm.nih.gov/12345678/") == SourceTier.RCT
    assert (
        classify_source_tier("https://journal.org/a", "A randomized trial of magnesium")
        == SourceTier.RCT
    )
    assert (
        classify_source_tier("https://journal.org/b", "Magnesium: a systematic review")
        == SourceTier.META_ANALYSIS
    )
    assert classify_source_tier("https://www.mayoclinic.org/drugs") == SourceTier.OBSERVATIONAL
    assert (
        classify_source_tier("https://site.org/c", "Sleep study", "A large cohort of adults")
        == SourceTier.OBSERVATIONAL
    )
    assert classify_source_tier("https://someone.substack.com/p/mag") == SourceTier.BLOG
    assert classify_source_tier("https://example.com/blog/magnesium") == SourceTier.BLOG
    assert classify_source_tier("https://example.com/page") == SourceTier.UNKNOWN


def test_tier_rank_orders_credibility():
    assert SOURCE_TIER_RANK[SourceTier.FDA_LABEL] < SOURCE_TIER_RANK[SourceTier.RCT]
    assert SOURCE_TIER_RANK[SourceTier.BLOG] < SOURCE_TIER_RANK[SourceTier.UNKNOWN]


def test_identifiers_are_extracted():
    assert extract_doi("see https://doi.org/10.1016/j.jada.2009.01.002.") == "10.1016/j.jada.2009.01.002"
    assert extract_doi("no identifier here") is None
    assert extract_pubmed_id("https://pubmed.ncbi.nlm.nih.gov/31234567/") == "31234567"
    assert extract_pubmed_id("Reference PMID: 2345678") == "2345678"


def test_citation_from_hit_uses_first_snippet_and_domain():
    hit = SearchHit(
        title="Magnesium - Health Professional Fact Sheet",
        url="https://www.ods.od.nih.gov/factsheets/Magnesium",
        description="Fallback description",
        snippets=["", "Magnesium is involved in over 300 enzyme systems."],
        favicon_url="https://ods.od.nih.gov/favicon.ico",
    )

    citation = citation_from_hit(hit)

    assert citation.snippet == "Magnesium is involved in over 300 enzyme systems."
    assert citation.source_name == "ods.od.nih.gov"
    assert citation.source_tier == SourceTier.OBSERVATIONAL
    assert citation.favicon_url == "https://ods.od.nih.gov/favicon.ico"


def test_citation_from_source_ref():
    ref = {"citation_uri": "https://www.drugs.com/interactions", "title": "Drug interactions"}
    citation = citation_from_source_ref(ref)

    assert citation is not None
    assert citation.url == "https://www.drugs.com/interactions"
    assert citation.source_name == "drugs.com"
    assert citation_from_source_ref({"title": "no url"}) is None
