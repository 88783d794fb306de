"""
Tests for principal authentication and capability enforcement.
"""
import pytest
from rest_framework import status
from rest_framework.response import Response
from rest_framework.test import APIRequestFactory, force_authenticate
from rest_framework.views import APIView

from apps.core.authentication import PrincipalAuthentication
from apps.core.permissions import HasCapability, requires_capability
from apps.rbac.principal import Principal, resolve_from_gateway_headers
from apps.rbac.services import get_engine


@pytest.fixture
def request_factory():
    """Create an API request factory."""
    return APIRequestFactory()


@requires_capability('manage_permissions')
class ManageView(APIView):
    permission_classes = [HasCapability]

    def get(self, request):
        return Response({'ok': True})


class MixedView(APIView):
    permission_classes = [HasCapability]

    def get(self, request):
        return Response({'ok': True})

    @requires_capability('edit_exams')
    def post(self, request):
        return Response({'ok': True})


class TestGatewayResolver:

    def test_resolves_headers(self, request_factory):
        request = request_factory.get(
            '/', HTTP_X_USER_ID='42', HTTP_X_USERNAME='jdoe', HTTP_X_USER_ROLE='user'
        )

        assert resolve_from_gateway_headers(request) == Principal('42', 'jdoe', 'user')

    def test_missing_user_id_is_unauthenticated(self, request_factory):
        request = request_factory.get('/', HTTP_X_USER_ROLE='admin')

        assert resolve_from_gateway_headers(request) is None

    def test_blank_role_becomes_none(self, request_factory):
        request = request_factory.get('/', HTTP_X_USER_ID='42', HTTP_X_USER_ROLE='  ')

        assert resolve_from_gateway_headers(request).role is None

    def test_principal_behaves_like_a_user(self):
        principal = Principal('42', 'jdoe', 'user')

        assert principal.is_authenticated is True
        assert principal.pk == '42'
        assert str(principal) == 'jdoe'


class TestPrincipalAuthentication:

    def test_authenticate_uses_configured_resolver(self, request_factory, settings):
        settings.RBAC_PRINCIPAL_RESOLVER = 'apps.rbac.principal.resolve_from_gateway_headers'
        request = ManageView().initialize_request(request_factory.get('/', HTTP_X_USER_ID='7'))

        principal, auth = PrincipalAuthentication().authenticate(request)

        assert principal.user_id == '7'
        assert auth is None

    def test_authenticate_header_enables_401(self, request_factory):
        assert PrincipalAuthentication().authenticate_header(None).startswith('Gateway')


@pytest.mark.django_db
class TestHasCapability:

    def test_bypass_role_allowed(self, request_factory):
        request = request_factory.get('/')
        force_authenticate(request, user=Principal('1', 'root', 'admin'))

        response = ManageView.as_view()(request)

        assert response.status_code == status.HTTP_200_OK

    def test_missing_capability_denied(self, request_factory, seeded_catalog):
        request = request_factory.get('/')
        force_authenticate(request, user=Principal('2', 'jdoe', 'user'))

        response = ManageView.as_view()(request)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['code'] == 'PERMISSION_DENIED'
        assert response.data['details'] == {
            'required_capability': 'manage_permissions',
            'reason': 'no matching grant',
        }

    def test_unauthenticated_is_401(self, request_factory):
        request = request_factory.get('/')

        response = ManageView.as_view()(request)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_explicit_grant_allowed(self, request_factory, seeded_catalog):
        get_engine().set_user_override('2', 'manage_permissions', 'grant', 'root')
        request = request_factory.get('/')
        force_authenticate(request, user=Principal('2', 'jdoe', 'user'))

        response = ManageView.as_view()(request)

        assert response.status_code == status.HTTP_200_OK

    def test_method_level_requirement(self, request_factory):
        principal = Principal('3', 'jdoe', 'user')

        get_request = request_factory.get('/')
        force_authenticate(get_request, user=principal)
        post_request = request_factory.post('/')
        force_authenticate(post_request, user=principal)

        assert MixedView.as_view()(get_request).status_code == status.HTTP_200_OK
        assert MixedView.as_view()(post_request).status_code == status.HTTP_403_FORBIDDEN
