"""Tests for leadradar.pipeline.sanitizer — behaviour telemetry ingestion."""
import pytest

from leadradar.errors import ValidationError
from leadradar.pipeline.sanitizer import (
    sanitize_behavior_data,
    sanitize_batch,
    sanitize_string,
    sanitize_email,
    sanitize_phone,
    sanitize_url,
    sanitize_ip,
)


class TestCounters:

    @pytest.mark.parametrize('value', [-5, 'abc', None, True, float('nan'), float('inf'), 5000])
    def test_invalid_counter_becomes_zero(self, value):
        data = sanitize_behavior_data({'time_on_pricing_page': value})
        assert data.time_on_pricing_page == 0

    def test_counter_floored(self):
        assert sanitize_behavior_data({'emails_opened': 12.7}).emails_opened == 12

    def test_counter_at_upper_bound_kept(self):
        assert sanitize_behavior_data({'visits_last_14_days': 100}).visits_last_14_days == 100

    def test_missing_counters_default_to_zero(self):
        data = sanitize_behavior_data({})
        assert data.quote_clicks_no_submit == 0
        assert data.total_time_on_site == 0


class TestRates:

    @pytest.mark.parametrize('value,expected', [
        (1.5, 1.0),
        (-0.2, 0.0),
        (0.45, 0.45),
        ('x', 0.0),
    ])
    def test_form_completion_clamped(self, value, expected):
        assert sanitize_behavior_data({'form_completion_rate': value}).form_completion_rate == expected

    def test_scroll_depth_clamped(self):
        assert sanitize_behavior_data({'max_scroll_depth': 150}).max_scroll_depth == 100.0


class TestStrings:

    def test_html_metacharacters_stripped(self):
        assert sanitize_string('<b>Acme & Co</b>', 100) == 'bAcme  Co/b'

    def test_length_capped(self):
        assert sanitize_string('x' * 150, 100) == 'x' * 100

    def test_empty_becomes_none(self):
        assert sanitize_string('  <> ', 100) is None
        assert sanitize_string(42, 100) is None

    def test_company_capped_in_record(self):
        assert len(sanitize_behavior_data({'company': 'A' * 300}).company) == 100


class TestEmail:

    def test_lowercased(self):
        assert sanitize_email(' Jane@Acme.IO ') == 'jane@acme.io'

    @pytest.mark.parametrize('value', ['not-an-email', 'a@b', 'a b@c.com', None, 7])
    def test_invalid_dropped(self, value):
        assert sanitize_email(value) is None


class TestPhone:

    def test_formatting_kept(self):
        assert sanitize_phone('+1 (555) 010-2030') == '+1 (555) 010-2030'

    def test_letters_removed(self):
        assert sanitize_phone('call 555-123-4567') == '555-123-4567'

    @pytest.mark.parametrize('value', ['12', 'abc', '1' * 25, None])
    def test_invalid_dropped(self, value):
        assert sanitize_phone(value) is None


class TestUrls:

    @pytest.mark.parametrize('value', ['/pricing', 'https://acme.io/quote', 'http://acme.io'])
    def test_accepted(self, value):
        assert sanitize_url(value) == value

    @pytest.mark.parametrize('value', ['javascript:alert(1)', '//evil.com', 'ftp://x', '', 'h' * 3000])
    def test_rejected(self, value):
        assert sanitize_url(value) is None

    def test_pages_filtered_and_capped(self):
        pages = ['/a', 'javascript:x', '/b'] + [f'/p{i}' for i in range(60)]
        data = sanitize_behavior_data({'pages_visited': pages})
        assert data.pages_visited[:2] == ('/a', '/b')
        assert len(data.pages_visited) == 49

    def test_non_list_pages_ignored(self):
        assert sanitize_behavior_data({'pages_visited': '/pricing'}).pages_visited == ()


class TestEnumsAndMisc:

    def test_unknown_source_defaults_to_website(self):
        assert sanitize_behavior_data({'source': 'carrier_pigeon'}).source == 'website'

    def test_device_type_normalized(self):
        assert sanitize_behavior_data({'device_type': 'Mobile'}).device_type == 'mobile'

    def test_ip_address(self):
        assert sanitize_ip('10.0.0.1') == '10.0.0.1'
        assert sanitize_ip('::1') == '::1'
        assert sanitize_ip('999.1.1.1') is None

    def test_last_activity_parsed(self):
        data = sanitize_behavior_data({'last_activity': '2026-03-01T10:00:00Z'})
        assert data.last_activity.isoformat() == '2026-03-01T10:00:00+00:00'

    def test_last_activity_defaults_to_now(self):
        assert sanitize_behavior_data({}).last_activity is not None

    def test_non_object_raises(self):
        with pytest.raises(ValidationError):
            sanitize_behavior_data(['not', 'a', 'dict'])


class TestBatch:

    def test_non_list_raises(self):
        with pytest.raises(ValidationError, match='must be a list'):
            sanitize_batch({'email': 'a@b.co'})

    def test_too_many_records_raises(self):
        with pytest.raises(ValidationError, match='Too many behavior records'):
            sanitize_batch([{}] * 1001)

    def test_minority_of_bad_records_dropped(self):
        result = sanitize_batch([{}, 'junk', {'emails_opened': 3}])
        assert len(result) == 2

    def test_exactly_half_bad_is_accepted(self):
        assert len(sanitize_batch([{}, None])) == 1

    def test_majority_bad_rejects_batch(self):
        with pytest.raises(ValidationError) as exc:
            sanitize_batch([{}, 'junk', 42])
        assert exc.value.details['errors'] == [
            'Item 1: Behavior data must be an object',
            'Item 2: Behavior data must be an object',
        ]

    def test_empty_batch(self):
        assert sanitize_batch([]) == []
