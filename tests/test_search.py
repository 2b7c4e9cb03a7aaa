import itertools

import pytest

from archive_data import (
    POST_AUTHORS,
    POST_COLLECTIONS,
    POST_PLATFORM,
    POST_TAGS,
    POST_TITLES,
    POSTS_NEWEST_FIRST,
    TAG_A,
    TAG_B,
    TAG_C,
)
from archive_viewer.core.errors import InvalidQueryError
from archive_viewer.models import Pagination, PostOrder
from archive_viewer.services.search import (
    SearchFilter,
    compose_search,
    search_posts,
)

EVERYTHING = Pagination(limit=100)


def expected_posts(search_filter):
    """Posts matching the filter, computed from the fixture data."""
    matched = []
    for post in POSTS_NEWEST_FIRST:
        if search_filter.search and search_filter.search.lower() not in POST_TITLES[post].lower():
            continue
        if not set(search_filter.tags) <= POST_TAGS[post]:
            continue
        if not set(search_filter.authors) <= POST_AUTHORS[post]:
            continue
        if not set(search_filter.collections) <= POST_COLLECTIONS[post]:
            continue
        if search_filter.platforms and POST_PLATFORM[post] not in search_filter.platforms:
            continue
        matched.append(post)
    return matched


class TestSearchFilter:
    def test_id_sets_are_sorted_and_distinct(self):
        assert SearchFilter(tags=[2, 1, 2]).tags == (1, 2)

    def test_equivalent_filters_are_equal(self):
        first = SearchFilter(tags=[1, 2], search=" post ")
        second = SearchFilter(tags=[2, 1, 1], search="post")
        assert first == second
        assert hash(first) == hash(second)

    def test_none_means_empty(self):
        search_filter = SearchFilter(search=None, tags=None)
        assert search_filter.search == ""
        assert search_filter.tags == ()


class TestComposeSearch:
    def test_empty_filter_adds_nothing(self):
        query = compose_search(SearchFilter(), full_text_search=False)
        assert query.joins == []
        assert query.filters == []
        assert query.havings == []
        assert query.params == {}
        assert "WHERE" not in query.select_sql()
        assert "HAVING" not in query.count_sql()

    def test_single_id_needs_no_having(self):
        query = compose_search(SearchFilter(tags=[TAG_A]), full_text_search=False)
        assert len(query.joins) == 1
        assert query.havings == []
        assert "tags_count" not in query.params

    def test_several_ids_require_each_of_them(self):
        query = compose_search(SearchFilter(tags=[TAG_A, TAG_B]), full_text_search=False)
        assert len(query.havings) == 1
        assert query.params["tags_count"] == 2
        assert "GROUP BY posts.id" in query.select_sql()

    def test_platforms_are_a_plain_filter(self):
        query = compose_search(SearchFilter(platforms=[1, 2]), full_text_search=False)
        assert query.joins == []
        assert query.havings == []
        assert len(query.filters) == 1

    def test_search_text_is_bound_not_inlined(self):
        text = "x'; DROP TABLE posts; --"
        for fts in (False, True):
            query = compose_search(SearchFilter(search=text), full_text_search=fts)
            assert text not in query.select_sql()
            assert text not in query.count_sql()
            assert ":search" in query.select_sql()

    def test_full_text_search_joins_the_index(self):
        query = compose_search(SearchFilter(search="post"), full_text_search=True)
        assert any("_posts_fts" in join for join in query.joins)
        assert query.params["search"] == "post"

    def test_statement_text_does_not_depend_on_id_count(self):
        two = compose_search(SearchFilter(authors=[1, 2]), full_text_search=False)
        three = compose_search(SearchFilter(authors=[1, 2, 3]), full_text_search=False)
        assert two.select_sql() == three.select_sql()


class TestSearchPosts:
    async def test_both_tags_required(self, archive, caches):
        async with archive.transaction() as db:
            result = await search_posts(db, caches, EVERYTHING, SearchFilter(tags=[TAG_A, TAG_B]))
        assert [p.id for p in result.list] == [1]
        assert result.total == 1

    async def test_single_tag(self, archive, caches):
        async with archive.transaction() as db:
            result = await search_posts(db, caches, EVERYTHING, SearchFilter(tags=[TAG_A]))
        assert [p.id for p in result.list] == [1, 2]
        assert result.total == 2

    async def test_no_post_has_every_tag(self, archive, caches):
        async with archive.transaction() as db:
            result = await search_posts(
                db, caches, EVERYTHING, SearchFilter(tags=[TAG_A, TAG_B, TAG_C])
            )
        assert result.list == []
        assert result.total == 0

    async def test_adding_ids_only_narrows(self, archive, caches):
        async with archive.transaction() as db:
            wide = await search_posts(db, caches, EVERYTHING, SearchFilter(authors=[1]))
            narrow = await search_posts(db, caches, EVERYTHING, SearchFilter(authors=[1, 2]))
        assert {p.id for p in narrow.list} <= {p.id for p in wide.list}
        assert [p.id for p in narrow.list] == [2]

    async def test_platform_matches_any_given(self, archive, caches):
        async with archive.transaction() as db:
            result = await search_posts(db, caches, EVERYTHING, SearchFilter(platforms=[1, 2]))
        assert [p.id for p in result.list] == [1, 2]

    async def test_title_substring_search(self, archive, caches):
        async with archive.transaction() as db:
            result = await search_posts(db, caches, EVERYTHING, SearchFilter(search="post"))
        assert [p.id for p in result.list] == [1, 2]
        assert result.total == 2

    async def test_every_combination_matches_fixture(self, archive, caches):
        tag_sets = [(), (TAG_A,), (TAG_B,), (TAG_A, TAG_B)]
        author_sets = [(), (1,), (2,), (1, 2)]
        collection_sets = [(), (1,), (2,)]
        platform_sets = [(), (1,), (2,), (1, 2)]

        async with archive.transaction() as db:
            for tags, authors, collections, platforms in itertools.product(
                tag_sets, author_sets, collection_sets, platform_sets
            ):
                search_filter = SearchFilter(
                    tags=tags, authors=authors, collections=collections, platforms=platforms
                )
                result = await search_posts(db, caches, EVERYTHING, search_filter)
                expected = expected_posts(search_filter)
                assert [p.id for p in result.list] == expected, search_filter
                assert result.total == len(expected), search_filter

    async def test_total_ignores_pagination(self, archive, caches):
        async with archive.transaction() as db:
            first = await search_posts(db, caches, Pagination(limit=1), SearchFilter())
            second = await search_posts(db, caches, Pagination(limit=1, page=1), SearchFilter())
        assert [p.id for p in first.list] == [1]
        assert [p.id for p in second.list] == [2]
        assert first.total == second.total == 3

    async def test_total_is_cached_per_filter(self, archive, caches, count_selects):
        search_filter = SearchFilter(tags=[TAG_B])
        async with archive.transaction() as db:
            await search_posts(db, caches, EVERYTHING, search_filter)
            before = count_selects()
            again = await search_posts(db, caches, EVERYTHING, SearchFilter(tags=[TAG_B, TAG_B]))
        # only the page is queried the second time
        assert count_selects() == before + 1
        assert again.total == 2
        assert search_filter in caches.search

    async def test_id_order(self, archive, caches):
        async with archive.transaction() as db:
            result = await search_posts(
                db, caches, EVERYTHING, SearchFilter(order_by=PostOrder.id)
            )
        assert [p.id for p in result.list] == [3, 2, 1]

    async def test_random_order_returns_every_match(self, archive, caches):
        async with archive.transaction() as db:
            result = await search_posts(
                db, caches, EVERYTHING, SearchFilter(order_by=PostOrder.random)
            )
        assert sorted(p.id for p in result.list) == [1, 2, 3]
        assert result.total == 3

    async def test_full_text_search(self, fts_archive, caches):
        async with fts_archive.transaction() as db:
            result = await search_posts(
                db, caches, EVERYTHING, SearchFilter(search="entry"), full_text_search=True
            )
        assert [p.id for p in result.list] == [3]
        assert result.total == 1

    async def test_full_text_terms_need_not_be_adjacent(self, fts_archive, caches):
        async with fts_archive.transaction() as db:
            result = await search_posts(
                db, caches, EVERYTHING, SearchFilter(search="post first"), full_text_search=True
            )
        assert [p.id for p in result.list] == [1]
        assert result.total == 1

    async def test_full_text_syntax_error_is_invalid_query(self, fts_archive, caches):
        async with fts_archive.transaction() as db:
            with pytest.raises(InvalidQueryError):
                await search_posts(
                    db, caches, EVERYTHING, SearchFilter(search='"unbalanced'),
                    full_text_search=True,
                )
        assert len(caches.search) == 0

    async def test_full_text_search_with_tags(self, fts_archive, caches):
        async with fts_archive.transaction() as db:
            result = await search_posts(
                db, caches, EVERYTHING,
                SearchFilter(search="post", tags=[TAG_A, TAG_B]), full_text_search=True,
            )
        assert [p.id for p in result.list] == [1]
        assert result.total == 1


@pytest.mark.parametrize("order", list(PostOrder))
def test_every_order_has_a_clause(order):
    assert "ORDER BY" in compose_search(SearchFilter(), False).select_sql(order)
