"""
Tests for the Mockup OpenAPI Synthesizer

Tests document generation including:
- One operation per fixture
- Request and response examples
- Authentication endpoints and tag ordering
- Merging hand-authored fragments
"""

import pytest

from mockup.mock.fixtures import MockupConfig
from mockup.mock.openapi import (
    AUTH_TAG,
    OPENAPI_VERSION,
    SERVICES_TAG,
    SpecSynthesizer,
    build_auth_document,
    merge_documents,
)


@pytest.fixture
def synthesizer(config):
    return SpecSynthesizer(config.fixtures, overrides=[build_auth_document(config.base_uri)])


@pytest.fixture
def document(synthesizer):
    return synthesizer.document


class TestSpecSynthesizer:
    """Test SpecSynthesizer output."""

    def test_document_header(self, document):
        assert document['openapi'] == OPENAPI_VERSION
        assert document['info']['title'] == 'Mockup Server'
        assert document['servers'] == [{'url': '/'}]

    def test_operation_per_fixture(self, document, config):
        """Test every fixture appears under its path and lowercase method."""
        for fixture in config.fixtures:
            assert fixture.method.lower() in document['paths'][fixture.path]

    def test_operation_fields(self, document):
        operation = document['paths']['/ic/project/services/WS_getCityList']['post']

        assert operation['tags'] == [SERVICES_TAG]
        assert operation['summary'] == 'List cities'
        assert operation['x-fixture-name'] == 'WS_getCityList'
        assert operation['operationId'] == 'post_ic_project_services_WS_getCityList'

    def test_summary_falls_back_to_name(self, document):
        operation = document['paths']['/products']['get']

        assert operation['summary'] == 'List products'
        assert 'x-fixture-name' not in operation

    def test_default_request_example(self, document):
        """Test body methods without a request example get an empty object."""
        operation = document['paths']['/ic/project/services/WS_getCityList']['post']

        assert operation['requestBody']['content']['application/json']['example'] == {}

    def test_configured_request_example(self, document):
        operation = document['paths']['/ic/project/services/WS_SearchFlightList']['post']

        assert operation['requestBody']['content']['application/json']['example'] == {'origin': 'BKK'}

    def test_no_request_body_for_get(self, document):
        assert 'requestBody' not in document['paths']['/products']['get']

    def test_configured_request_on_get(self):
        """Test a configured request example is kept for methods without a body default."""
        config = MockupConfig.from_dict({'services': {
            'GET /search': {
                'request': {'content_type': 'application/json', 'body': {'q': 'BKK'}},
                'response': {'status': 200, 'body': []},
            },
        }})
        document = SpecSynthesizer(config.fixtures).document

        request_body = document['paths']['/search']['get']['requestBody']
        assert request_body['content']['application/json']['example'] == {'q': 'BKK'}

    def test_response_example(self, document):
        """Test responses are keyed by the status code as a string."""
        responses = document['paths']['/ic/project/services/WS_getCityList']['post']['responses']

        assert list(responses) == ['200']
        assert responses['200']['description'] == 'OK'
        example = responses['200']['content']['application/json']['example']
        assert example == {'content': {'cityList': [{'cityCode': 'BKK', 'cityName': 'Bangkok'}]}}

    def test_multiple_examples(self, document):
        """Test alternative examples are listed under their status."""
        responses = document['paths']['/ic/project/services/WS_SearchFlightList']['post']['responses']

        assert set(responses) == {'200', '500'}
        media = responses['200']['content']['application/json']
        assert 'example' not in media
        assert media['examples']['default']['value'] == {'content': {'flightList': [{'flightNo': 'TG102'}]}}
        assert media['examples']['empty']['value'] == {'content': {'flightList': []}}
        assert responses['500']['description'] == 'Internal Server Error'

    def test_auth_paths(self, document):
        assert 'post' in document['paths']['/api/auth/login']
        assert 'get' in document['paths']['/api/auth/status']
        assert 'post' in document['paths']['/api/auth/logout']

    def test_auth_paths_under_base_uri(self):
        document = SpecSynthesizer([], overrides=[build_auth_document('/ic/project')]).document

        assert '/ic/project/api/auth/login' in document['paths']

    def test_authentication_tag_first(self, document):
        names = [tag['name'] for tag in document['tags']]

        assert names == [AUTH_TAG, SERVICES_TAG]

    def test_auth_document_wins_over_fixture(self):
        """Test a fixture on the login path does not replace the auth operation."""
        config = MockupConfig.from_dict({'services': {
            'POST /api/auth/login': {'name': 'shadow', 'response': {'status': 200, 'body': {}}},
        }})
        document = SpecSynthesizer(config.fixtures, overrides=[build_auth_document()]).document

        assert document['paths']['/api/auth/login']['post']['operationId'] == 'authLogin'

    def test_configured_fragment(self):
        """Test an openapi section from the configuration is merged last."""
        fragment = {
            'info': {'title': 'Flight Booking'},
            'paths': {'/api/auth/login': {'post': {'summary': 'Custom login', 'responses': {}}}},
        }
        document = SpecSynthesizer([], overrides=[build_auth_document(), fragment]).document

        assert document['info'] == {
            'title': 'Flight Booking',
            'version': '1.0.0',
            'description': 'Simulated backend generated from the mockup configuration',
        }
        assert document['paths']['/api/auth/login']['post']['summary'] == 'Custom login'
        assert 'get' in document['paths']['/api/auth/status']

    def test_document_cached(self, synthesizer):
        assert synthesizer.document is synthesizer.document

    def test_unknown_status_description(self):
        config = MockupConfig.from_dict({'services': {'/odd': {'response': {'status': 299, 'body': {}}}}})
        document = SpecSynthesizer(config.fixtures).document

        assert document['paths']['/odd']['get']['responses']['299']['description'] == 'Status 299'

    def test_empty_fixtures(self):
        document = SpecSynthesizer([]).document

        assert document['paths'] == {}
        assert document['tags'] == []


class TestMergeDocuments:
    """Test merge_documents."""

    def test_override_wins(self):
        merged = merge_documents({'info': {'title': 'A', 'version': '1'}}, {'info': {'title': 'B'}})

        assert merged['info'] == {'title': 'B', 'version': '1'}

    def test_operations_replaced_whole(self):
        base = {'paths': {'/x': {'get': {'summary': 'old', 'deprecated': True}}}}
        override = {'paths': {'/x': {'GET': {'summary': 'new'}}}}

        merged = merge_documents(base, override)

        assert merged['paths']['/x']['get'] == {'summary': 'new'}

    def test_other_methods_kept(self):
        base = {'paths': {'/x': {'get': {'summary': 'get'}}}}
        override = {'paths': {'/x': {'post': {'summary': 'post'}}}}

        merged = merge_documents(base, override)

        assert set(merged['paths']['/x']) == {'get', 'post'}

    def test_tags_unioned(self):
        base = {'tags': [{'name': 'Services'}, {'name': AUTH_TAG}]}
        override = {'tags': [{'name': 'Services', 'description': 'Fixtures'}, {'name': 'Extra'}]}

        merged = merge_documents(base, override)

        assert [tag['name'] for tag in merged['tags']] == [AUTH_TAG, 'Services', 'Extra']
        assert merged['tags'][1]['description'] == 'Fixtures'

    def test_inputs_not_mutated(self):
        base = {'paths': {'/x': {'get': {'summary': 'old'}}}}

        merge_documents(base, {'paths': {'/x': {'get': {'summary': 'new'}}}})

        assert base['paths']['/x']['get']['summary'] == 'old'
