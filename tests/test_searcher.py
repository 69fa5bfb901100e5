import asyncio
import tempfile
import unittest
from pathlib import Path

from index_fixtures import (
    ARTICLE,
    Article,
    FakeProvider,
    build_dir_index,
    build_ram_index,
    make_schema,
    ranked_hits,
)
from scored_search.errors import ConfigurationError, DocumentNotFoundError, ParseFailure
from scored_search.index import WhooshIndexProvider
from scored_search.options import TYPE_FIELD, SearchOptions
from scored_search.query import QueryBuilder
from scored_search.searcher import ScoredSearcher
from scored_search.sorting import SortSpec


def ids(results):
    return [r.document["Id"] for r in results]


class ScoredSearchTests(unittest.TestCase):
    def setUp(self) -> None:
        self.searcher = ScoredSearcher(WhooshIndexProvider(build_ram_index()))

    def test_single_field_results_ordered_by_descending_score(self) -> None:
        results = self.searcher.scored_search(SearchOptions("python", "Content"))

        self.assertEqual({"1", "2", "4"}, set(ids(results)))
        self.assertEqual(3, results.total_hits)
        scores = [r.score for r in results]
        self.assertEqual(sorted(scores, reverse=True), scores)
        self.assertIsInstance(results.elapsed, int)
        self.assertGreaterEqual(results.elapsed, 0)

    def test_multi_field_search_tolerates_typos(self) -> None:
        results = self.searcher.scored_search(SearchOptions("pyhton", "Title,Content"))

        self.assertEqual({"1", "2", "4"}, set(ids(results)))

    def test_multi_field_search_requires_every_term(self) -> None:
        results = self.searcher.scored_search(SearchOptions("python framework", "Title,Content"))

        self.assertEqual(["1"], ids(results))

    def test_title_boost_ranks_title_matches_first(self) -> None:
        options = SearchOptions("python", "Title,Content", boosts={"Title": 10.0})

        results = self.searcher.scored_search(options)

        self.assertEqual({"1", "2"}, set(ids(results)[:2]))
        self.assertEqual("4", ids(results)[2])

    def test_relevance_ties_broken_by_sort_field(self) -> None:
        results = self.searcher.scored_search(SearchOptions("banana", "Content", sort_by="Title"))

        self.assertEqual(["8", "6", "5", "7"], ids(results))
        self.assertGreater(results.results[0].score, results.results[1].score)
        self.assertEqual(results.results[1].score, results.results[3].score)

    def test_repeated_search_is_identical(self) -> None:
        options = SearchOptions("python web", "Content", sort_by="Title")

        first = self.searcher.scored_search(options)
        second = self.searcher.scored_search(options)

        self.assertEqual(
            [(r.document, r.score) for r in first],
            [(r.document, r.score) for r in second],
        )
        self.assertEqual(first.total_hits, second.total_hits)

    def test_pagination_and_total_hits(self) -> None:
        everything = self.searcher.scored_search(SearchOptions("banana", "Content", sort_by="Title"))
        page = self.searcher.scored_search(
            SearchOptions("banana", "Content", sort_by="Title", skip=1, take=2)
        )

        self.assertEqual(4, page.total_hits)
        self.assertEqual(ids(everything)[1:3], ids(page))

    def test_maximum_number_of_hits_bounds_total_hits(self) -> None:
        results = self.searcher.scored_search(
            SearchOptions("banana", "Content", maximum_number_of_hits=2, sort_by="Title")
        )

        self.assertEqual(2, results.total_hits)
        self.assertEqual(["8", "6"], ids(results))

    def test_type_filter_after_pagination(self) -> None:
        results = self.searcher.scored_search(
            SearchOptions("banana", "Content", type=Article, sort_by="Title", skip=1)
        )

        self.assertEqual(4, results.total_hits)
        self.assertEqual(["6", "5"], ids(results))
        self.assertTrue(all(r.document[TYPE_FIELD] == ARTICLE for r in results))

    def test_convenience_overload(self) -> None:
        results = self.searcher.scored_search(
            "banana", "Content", 10, None, ARTICLE, "Title", 0, 2
        )

        self.assertEqual(4, results.total_hits)
        self.assertEqual(["8", "6"], ids(results))

    def test_convenience_overload_validates(self) -> None:
        with self.assertRaises(ConfigurationError):
            self.searcher.scored_search("banana")

    def test_unparseable_keywords_retry_escaped(self) -> None:
        with self.assertLogs("scored_search.searcher", level="WARNING") as logs:
            results = self.searcher.scored_search(SearchOptions('"unterminated phrase', "Content"))

        self.assertIn("9", ids(results))
        self.assertIn("using escaped query", logs.output[0])

    def test_multi_field_unparseable_keywords_retry_escaped(self) -> None:
        results = self.searcher.scored_search(SearchOptions("(python framework", "Title,Content"))

        self.assertEqual(["1"], ids(results))

    def test_second_parse_failure_propagates(self) -> None:
        with self.assertRaises(ParseFailure) as ctx:
            self.searcher.scored_search(SearchOptions("python AND", "Content"))

        self.assertEqual("python AND", ctx.exception.keywords)

    def test_negated_term_excludes_matches(self) -> None:
        for keywords in ("python NOT rust", "python !rust", "python -rust"):
            with self.subTest(keywords=keywords):
                results = self.searcher.scored_search(SearchOptions(keywords, "Content"))

                self.assertEqual({"1", "2", "4"}, set(ids(results)))
                self.assertEqual(3, results.total_hits)

    def test_negated_term_removes_positive_match(self) -> None:
        results = self.searcher.scored_search(SearchOptions("python NOT django", "Content"))

        self.assertEqual({"2", "4"}, set(ids(results)))

    def test_only_negations_match_nothing(self) -> None:
        for keywords in ("NOT rust", "!rust", "-rust"):
            with self.subTest(keywords=keywords):
                results = self.searcher.scored_search(SearchOptions(keywords, "Content"))

                self.assertEqual(0, results.total_hits)
                self.assertEqual([], results.results)

    def test_multi_field_operator_word_fails_after_retry(self) -> None:
        with self.assertRaises(ParseFailure) as ctx:
            self.searcher.scored_search(SearchOptions("python AND web", "Title,Content"))

        self.assertEqual("python AND web", ctx.exception.keywords)

    def test_no_match_returns_empty_collection(self) -> None:
        results = self.searcher.scored_search(SearchOptions("haskell", "Content"))

        self.assertEqual(0, results.total_hits)
        self.assertEqual([], results.results)
        self.assertIsNone(results.first())

    def test_single_result(self) -> None:
        options = SearchOptions("banana", "Content", sort_by="Title")

        document = self.searcher.scored_search_single(options)

        self.assertEqual("8", document["Id"])
        self.assertEqual(1000, options.maximum_number_of_hits)

    def test_single_result_absent(self) -> None:
        self.assertIsNone(self.searcher.scored_search_single(SearchOptions("haskell", "Content")))

    def test_single_result_absent_when_filtered_by_type(self) -> None:
        options = SearchOptions("scripting", "Content", type=Article)

        self.assertIsNone(self.searcher.scored_search_single(options))

    def test_async_search(self) -> None:
        results = asyncio.run(self.searcher.scored_search_async(SearchOptions("python", "Content")))

        self.assertEqual(3, results.total_hits)

    def test_to_dict(self) -> None:
        results = self.searcher.scored_search(SearchOptions("rust", "Title"))

        payload = results.to_dict()
        self.assertEqual(1, payload["total_hits"])
        self.assertEqual("3", payload["results"][0]["document"]["Id"])


class EngineFailureTests(unittest.TestCase):
    def test_engine_error_propagates_without_retry(self) -> None:
        provider = FakeProvider(error=OSError("index unreadable"))
        searcher = ScoredSearcher(provider)

        with self.assertRaises(OSError):
            searcher.scored_search(SearchOptions("python", "Content"))

        self.assertEqual(1, provider.opened)

    def test_engine_error_after_escaped_retry_propagates(self) -> None:
        provider = FakeProvider(error=OSError("index unreadable"))
        searcher = ScoredSearcher(provider)

        with self.assertRaises(OSError):
            searcher.scored_search(SearchOptions("(python", "Content"))

        self.assertEqual(1, provider.opened)

    def test_explicit_schema_is_used_for_parsing(self) -> None:
        provider = FakeProvider(ranked_hits(1), {0: {"Id": "0"}})
        provider.schema = None
        schema = make_schema()

        searcher = ScoredSearcher(provider, schema=schema)
        results = searcher.scored_search(SearchOptions("python", "Content"))

        self.assertIs(schema, searcher.builder.schema)
        self.assertEqual(1, results.total_hits)


class WhooshIndexProviderTests(unittest.TestCase):
    def test_open_from_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            build_dir_index(tmpdir)
            searcher = ScoredSearcher.open(tmpdir, weighting="tf_idf")
            try:
                results = searcher.scored_search(SearchOptions("rust", "Title"))
                self.assertEqual(["3"], ids(results))
            finally:
                searcher.close()

    def test_missing_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(FileNotFoundError):
                WhooshIndexProvider.from_directory(Path(tmpdir) / "missing")

    def test_unknown_weighting(self) -> None:
        with self.assertRaises(ConfigurationError):
            WhooshIndexProvider(build_ram_index(), weighting="pagerank")

    def test_snapshot_document_lookup(self) -> None:
        provider = WhooshIndexProvider(build_ram_index())
        query = QueryBuilder(provider.schema).build(SearchOptions("rust", "Title")).unwrap()

        with provider.open_snapshot() as snapshot:
            hits = snapshot.search(query, 10, SortSpec())
            self.assertEqual(1, len(hits))
            self.assertEqual("3", snapshot.document(hits[0].doc_id)["Id"])
            with self.assertRaises(DocumentNotFoundError):
                snapshot.document(999)

    def test_snapshot_closed_on_error(self) -> None:
        provider = WhooshIndexProvider(build_ram_index())
        opened = []
        open_searcher = provider.index.searcher

        def tracking_searcher(**kwargs):
            searcher = open_searcher(**kwargs)
            close = searcher.close

            def tracked_close():
                opened.remove(searcher)
                close()

            searcher.close = tracked_close
            opened.append(searcher)
            return searcher

        provider.index.searcher = tracking_searcher

        with self.assertRaises(RuntimeError):
            with provider.open_snapshot():
                self.assertEqual(1, len(opened))
                raise RuntimeError("boom")

        self.assertEqual([], opened)


if __name__ == "__main__":
    unittest.main()
