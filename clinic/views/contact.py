from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.response import Response

from clinic.models import ContactMessage
from clinic.pagination import paginated_response
from clinic.permissions import IsAdminOrCreateOnly, IsAdminRole
from clinic.serializers.content import (
    ContactMessageSerializer,
    ContactReadSerializer,
    ContactReplySerializer,
    ListQuerySerializer,
)
from clinic.services import content
from clinic.throttling import PublicFormRateThrottle


@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrCreateOnly])
@throttle_classes([PublicFormRateThrottle])
def contact(request):
    if request.method == 'GET':
        q = ListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = ContactMessage.objects.order_by('processed', '-date', '-id')
        return paginated_response(qs, content.contact_to_dict, q.validated_data)

    s = ContactMessageSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    content.submit_contact_message(s.validated_data)
    return Response({'ok': True, 'message': 'Message received. We will get back to you soon.'},
                    status=status.HTTP_201_CREATED)


@api_view(['PATCH'])
@permission_classes([IsAdminRole])
def contact_read(request, pk: int):
    s = ContactReadSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    m = content.mark_contact_read(pk, processed=s.validated_data['processed'],
                                  notes=s.validated_data.get('notes'), actor=request.user)
    return Response({'ok': True, 'data': content.contact_to_dict(m)})


@api_view(['PATCH'])
@permission_classes([IsAdminRole])
def contact_reply(request, pk: int):
    s = ContactReplySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    m = content.reply_contact_message(pk, s.validated_data['reply'], actor=request.user)
    return Response({'ok': True, 'data': content.contact_to_dict(m)})


@api_view(['DELETE'])
@permission_classes([IsAdminRole])
def contact_delete(request, pk: int):
    content.delete_contact_message(pk, actor=request.user)
    return Response(status=status.HTTP_204_NO_CONTENT)
