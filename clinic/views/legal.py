from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.permissions import IsAdminOrReadOnly
from clinic.serializers.content import LegalSettingsSerializer
from clinic.services import content


@api_view(['GET', 'PUT'])
@permission_classes([IsAdminOrReadOnly])
def legal_settings(request):
    """Privacy, cookies and terms pages shown in the site footer."""
    if request.method == 'GET':
        return Response({'ok': True, 'data': content.get_legal_payload()})
    s = LegalSettingsSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    settings_row = content.update_legal_settings(s.validated_data, actor=request.user)
    return Response({'ok': True, 'data': content.legal_to_dict(settings_row)})
