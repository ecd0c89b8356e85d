"""
Unit tests for TMDB lookup and Gemini augmentation.
"""

import unittest
from unittest.mock import patch, MagicMock
import sys
import os

import requests
from google.api_core import exceptions as google_exceptions

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from metadata_service import (
    extract_director,
    to_five_point,
    configure_tmdb,
    search_tmdb_candidates,
    pick_candidate,
    build_metadata,
    parse_imdb_rating,
    parse_quote,
    augment_with_gemini,
    fetch_movie_metadata,
    TMDB_POSTER_BASE,
)


def mock_response(status_code=200, results=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = {"results": results or []}
    return response


SAMPLE_DETAILS = {
    "title": "The Thing",
    "overview": "Antarctic researchers meet a shape-shifting alien.",
    "runtime": 109,
    "release_date": "1982-06-25",
    "genres": [{"name": "Horror"}, {"name": "Mystery"}, {"name": "Science Fiction"}, {"name": "Thriller"}],
    "vote_average": 8.1,
    "poster_path": "/thing.jpg",
}

SAMPLE_CREDITS = {
    "crew": [
        {"job": "Producer", "name": "Stuart Cohen"},
        {"job": "Director", "name": "John Carpenter"},
    ]
}


class TestParsingHelpers(unittest.TestCase):

    def test_extract_director_from_dicts(self):
        self.assertEqual(extract_director(SAMPLE_CREDITS), "John Carpenter")
        self.assertIsNone(extract_director({"crew": []}))
        self.assertIsNone(extract_director({}))

    def test_extract_director_from_objects(self):
        member = MagicMock()
        member.job = "Director"
        member.name = "Agnès Varda"
        credits = MagicMock()
        credits.crew = [member]
        self.assertEqual(extract_director(credits), "Agnès Varda")

    def test_to_five_point(self):
        self.assertEqual(to_five_point(8.4), "4.2/5")
        self.assertEqual(to_five_point(10), "5.0/5")

    def test_parse_imdb_rating(self):
        self.assertEqual(parse_imdb_rating("IMDB: 8.6\nQUOTE: Hello"), "4.3/5")
        self.assertEqual(parse_imdb_rating("imdb: 7"), "3.5/5")
        self.assertIsNone(parse_imdb_rating("no score here"))
        self.assertIsNone(parse_imdb_rating(None))

    def test_parse_quote(self):
        text = 'IMDB: 8.5\nQUOTE: "Here\'s looking at you, kid."'
        self.assertEqual(parse_quote(text), "Here's looking at you, kid.")
        self.assertEqual(parse_quote('The best line is "I\'ll be back" honestly'), "I'll be back")
        self.assertIsNone(parse_quote("nothing to see"))

    def test_build_metadata(self):
        metadata = build_metadata(SAMPLE_DETAILS, SAMPLE_CREDITS)

        self.assertEqual(metadata["title"], "The Thing")
        self.assertEqual(metadata["director"], "John Carpenter")
        self.assertEqual(metadata["release_year"], "1982")
        self.assertEqual(metadata["genres"], ["Horror", "Mystery", "Science Fiction"])
        self.assertEqual(metadata["poster_url"], f"{TMDB_POSTER_BASE}/thing.jpg")
        self.assertEqual(metadata["official_rating"], "4.0/5")
        self.assertIsNone(metadata["quote"])

    def test_build_metadata_sparse_record(self):
        metadata = build_metadata({"title": "Obscure"}, {"crew": []}, director_hint="Someone")

        self.assertEqual(metadata["director"], "Someone")
        self.assertEqual(metadata["release_year"], "")
        self.assertIsNone(metadata["poster_url"])
        self.assertIsNone(metadata["official_rating"])


class TestTmdbLookup(unittest.TestCase):

    @patch('metadata_service.TMDb')
    @patch('metadata_service.get_secret', return_value="tmdb-key")
    def test_configure_tmdb(self, mock_secret, mock_tmdb):
        self.assertEqual(configure_tmdb(), "tmdb-key")
        self.assertEqual(mock_tmdb.return_value.api_key, "tmdb-key")

    @patch('metadata_service.get_secret', return_value=None)
    def test_configure_tmdb_missing_key(self, mock_secret):
        self.assertIsNone(configure_tmdb())

    @patch('metadata_service.requests.get')
    def test_search_uses_year_first(self, mock_get):
        mock_get.return_value = mock_response(results=[{"id": 1}])

        results = search_tmdb_candidates("The Thing", "key", year="1982")

        self.assertEqual(results, [{"id": 1}])
        mock_get.assert_called_once()
        self.assertEqual(mock_get.call_args.kwargs["params"]["year"], "1982")

    @patch('metadata_service.requests.get')
    def test_search_falls_back_to_broad_query(self, mock_get):
        mock_get.side_effect = [mock_response(results=[]), mock_response(results=[{"id": 2}])]

        results = search_tmdb_candidates("The Thing", "key", year="1882")

        self.assertEqual(results, [{"id": 2}])
        self.assertEqual(mock_get.call_count, 2)
        self.assertNotIn("year", mock_get.call_args.kwargs["params"])

    @patch('metadata_service.st')
    @patch('metadata_service.requests.get')
    def test_search_year_failure_is_not_fatal(self, mock_get, mock_st):
        mock_get.side_effect = [requests.ConnectionError("down"), mock_response(results=[{"id": 3}])]

        self.assertEqual(search_tmdb_candidates("Heat", "key", year="1995"), [{"id": 3}])
        mock_st.warning.assert_called_once()

    @patch('metadata_service.requests.get')
    def test_search_http_error(self, mock_get):
        mock_get.return_value = mock_response(status_code=401)
        self.assertEqual(search_tmdb_candidates("Heat", "bad-key"), [])

    def test_pick_candidate_by_popularity(self):
        candidates = [{"id": 1, "popularity": 3.0}, {"id": 2, "popularity": 40.0}, {"id": 3}]
        self.assertEqual(pick_candidate(candidates), 2)
        # Hints of two characters or fewer are ignored
        self.assertEqual(pick_candidate(candidates, director_hint="JC"), 2)

    @patch('metadata_service.Movie')
    def test_pick_candidate_by_director(self, mock_movie):
        crews = {
            10: {"crew": [{"job": "Director", "name": "Gus Van Sant"}]},
            20: {"crew": [{"job": "Director", "name": "Alfred Hitchcock"}]},
        }
        mock_movie.return_value.credits.side_effect = lambda movie_id: crews[movie_id]
        candidates = [{"id": 10, "popularity": 50.0}, {"id": 20, "popularity": 30.0}]

        self.assertEqual(pick_candidate(candidates, director_hint="hitchcock"), 20)

    @patch('metadata_service.Movie')
    def test_pick_candidate_director_not_found(self, mock_movie):
        mock_movie.return_value.credits.return_value = {"crew": []}
        candidates = [{"id": 10, "popularity": 50.0}, {"id": 20, "popularity": 30.0}]

        self.assertEqual(pick_candidate(candidates, director_hint="Kubrick"), 10)


class TestFetchMovieMetadata(unittest.TestCase):

    @patch('metadata_service.st')
    @patch('metadata_service.configure_tmdb', return_value=None)
    def test_missing_tmdb_key(self, mock_configure, mock_st):
        result = fetch_movie_metadata("Heat", year="1995", director_hint="Mann")

        self.assertEqual(result, {"title": "Heat", "release_year": "1995", "director": "Mann"})
        mock_st.error.assert_called_once()

    @patch('metadata_service.st')
    @patch('metadata_service.search_tmdb_candidates', return_value=[])
    @patch('metadata_service.configure_tmdb', return_value="key")
    def test_no_candidates(self, mock_configure, mock_search, mock_st):
        result = fetch_movie_metadata("Zzyzx")

        self.assertEqual(result["title"], "Zzyzx")
        mock_st.warning.assert_called_once()

    @patch('metadata_service.get_secret', return_value=None)
    @patch('metadata_service.Movie')
    @patch('metadata_service.search_tmdb_candidates')
    @patch('metadata_service.configure_tmdb', return_value="key")
    def test_success_without_gemini(self, mock_configure, mock_search, mock_movie, mock_secret):
        mock_search.return_value = [{"id": 1091, "popularity": 20.0}]
        mock_movie.return_value.details.return_value = SAMPLE_DETAILS
        mock_movie.return_value.credits.return_value = SAMPLE_CREDITS

        result = fetch_movie_metadata("the thing")

        self.assertEqual(result["title"], "The Thing")
        self.assertEqual(result["director"], "John Carpenter")
        mock_movie.return_value.details.assert_called_once_with(1091)

    @patch('metadata_service.augment_with_gemini')
    @patch('metadata_service.get_secret', return_value="gemini-key")
    @patch('metadata_service.Movie')
    @patch('metadata_service.search_tmdb_candidates')
    @patch('metadata_service.configure_tmdb', return_value="key")
    def test_success_with_gemini(self, mock_configure, mock_search, mock_movie, mock_secret, mock_augment):
        mock_search.return_value = [{"id": 1091, "popularity": 20.0}]
        mock_movie.return_value.details.return_value = SAMPLE_DETAILS
        mock_movie.return_value.credits.return_value = SAMPLE_CREDITS

        fetch_movie_metadata("the thing")

        mock_augment.assert_called_once()
        self.assertEqual(mock_augment.call_args.args[1], "gemini-key")

    @patch('metadata_service.st')
    @patch('metadata_service.search_tmdb_candidates', side_effect=requests.Timeout("slow"))
    @patch('metadata_service.configure_tmdb', return_value="key")
    def test_network_failure(self, mock_configure, mock_search, mock_st):
        self.assertEqual(fetch_movie_metadata("Heat"), {})
        mock_st.error.assert_called_once()


class TestGeminiAugmentation(unittest.TestCase):

    @patch('metadata_service.get_gemini_model')
    def test_augment(self, mock_get_model):
        model = MagicMock()
        model.generate_content.return_value.text = 'IMDB: 8.2\nQUOTE: "Man is the warmest place to hide."'
        mock_get_model.return_value = model

        metadata = augment_with_gemini({"title": "The Thing", "release_year": "1982"}, "k")

        self.assertEqual(metadata["official_rating"], "4.1/5")
        self.assertEqual(metadata["quote"], "Man is the warmest place to hide.")
        model.generate_content.assert_called_once()

    @patch('metadata_service.st')
    @patch('metadata_service.get_gemini_model')
    def test_augment_falls_back_to_json_quote(self, mock_get_model, mock_st):
        fallback_response = MagicMock()
        fallback_response.text = '{"quote": "Nobody trusts anybody now."}'
        model = MagicMock()
        model.generate_content.side_effect = [google_exceptions.GoogleAPIError("quota"), fallback_response]
        mock_get_model.return_value = model

        metadata = augment_with_gemini({"title": "The Thing", "official_rating": "4.0/5"}, "k")

        self.assertEqual(metadata["quote"], "Nobody trusts anybody now.")
        self.assertEqual(metadata["official_rating"], "4.0/5")
        self.assertEqual(model.generate_content.call_count, 2)
        mock_st.warning.assert_called_once()

    @patch('metadata_service.st')
    @patch('metadata_service.get_gemini_model')
    def test_augment_total_failure_keeps_metadata(self, mock_get_model, mock_st):
        model = MagicMock()
        model.generate_content.side_effect = google_exceptions.GoogleAPIError("down")
        mock_get_model.return_value = model

        metadata = augment_with_gemini({"title": "The Thing"}, "k")

        self.assertEqual(metadata, {"title": "The Thing"})
        self.assertEqual(mock_st.warning.call_count, 2)


if __name__ == '__main__':
    unittest.main()
