"""Tests for leadradar.services.ad_intel — Facebook Ads Library lookups."""
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from leadradar.services.ad_intel import enrich_competitors, search_ads, summarize_ads

NOW = datetime(2026, 3, 10, tzinfo=timezone.utc)


def _response(status_code=200, payload=None, reason='OK'):
    resp = MagicMock()
    resp.status_code = status_code
    resp.reason = reason
    resp.json.return_value = payload if payload is not None else {}
    return resp


class TestSearchAds:

    def test_requires_token(self):
        with patch('leadradar.services.ad_intel.FACEBOOK_ADS_ACCESS_TOKEN', None):
            with pytest.raises(RuntimeError, match='not configured'):
                search_ads('HubSpot')

    @patch('leadradar.services.ad_intel.requests.get')
    def test_queries_ads_archive(self, mock_get):
        mock_get.return_value = _response(payload={'data': [{'id': '1'}]})
        ads = search_ads('HubSpot', limit=10, access_token='tok')
        assert ads == [{'id': '1'}]
        args, kwargs = mock_get.call_args
        assert args[0].endswith('/ads_archive')
        assert kwargs['params']['search_terms'] == 'HubSpot'
        assert kwargs['params']['limit'] == 10
        assert kwargs['timeout'] == 20

    @patch('leadradar.services.ad_intel.requests.get')
    def test_api_error(self, mock_get):
        mock_get.return_value = _response(400, {'error': {'message': 'Invalid token'}}, 'Bad Request')
        with pytest.raises(RuntimeError, match='400 - Invalid token'):
            search_ads('HubSpot', access_token='tok')


class TestSummarizeAds:

    def test_active_ads_and_spend(self):
        ads = [
            {'ad_delivery_start_time': '2026-02-08', 'spend': {'lower_bound': '100', 'upper_bound': '200'},
             'publisher_platforms': ['facebook', 'instagram']},
            {'ad_delivery_start_time': '2026-01-01', 'ad_delivery_stop_time': '2026-02-01',
             'publisher_platforms': ['facebook']},
        ]
        summary = summarize_ads(ads, now=NOW)
        assert summary['total_ads_found'] == 2
        assert summary['active_ads'] == 1
        # 150 midpoint over 30 days, projected to a month
        assert summary['estimated_monthly_spend'] == 150
        assert summary['active_platforms'] == ['facebook', 'instagram']

    def test_unparseable_dates_skipped(self):
        summary = summarize_ads([{'ad_delivery_start_time': 'soon'}], now=NOW)
        assert summary['active_ads'] == 1
        assert summary['estimated_monthly_spend'] == 0


class TestEnrichCompetitors:

    def test_no_token_is_noop(self):
        competitors = [{'name': 'HubSpot'}]
        with patch('leadradar.services.ad_intel.FACEBOOK_ADS_ACCESS_TOKEN', None):
            assert enrich_competitors(competitors) is competitors

    @patch('leadradar.services.ad_intel.search_ads')
    def test_fills_missing_campaigns(self, mock_search):
        mock_search.return_value = [{'ad_delivery_start_time': 'soon'}, {'ad_delivery_stop_time': 'x'}]
        with patch('leadradar.services.ad_intel.FACEBOOK_ADS_ACCESS_TOKEN', 'tok'):
            result = enrich_competitors([{'name': 'HubSpot'}, {'name': 'Known', 'active_campaigns': 3}])
        assert result[0] == {'name': 'HubSpot', 'active_campaigns': 1, 'ad_spend_estimate': 0}
        assert result[1] == {'name': 'Known', 'active_campaigns': 3}
        mock_search.assert_called_once_with('HubSpot', limit=100)

    @patch('leadradar.services.ad_intel.search_ads', side_effect=RuntimeError('rate limited'))
    def test_lookup_failure_leaves_competitor(self, mock_search):
        with patch('leadradar.services.ad_intel.FACEBOOK_ADS_ACCESS_TOKEN', 'tok'):
            assert enrich_competitors([{'name': 'HubSpot'}]) == [{'name': 'HubSpot'}]
