from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from clinic.models import Testimonial
from clinic.pagination import paginated_response
from clinic.permissions import IsAdminRole
from clinic.serializers.content import ListQuerySerializer, TestimonialApproveSerializer, TestimonialSerializer
from clinic.services import content
from clinic.throttling import PublicFormRateThrottle

@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
@throttle_classes([PublicFormRateThrottle])
def testimonials(request):
    """Approved testimonials, or a new submission that waits for moderation."""
    if request.method == 'GET':
        qs = Testimonial.objects.filter(approved=True).order_by('-date', '-id')
        return Response({'ok': True, 'data': [content.testimonial_to_dict(t) for t in qs]})

    s = TestimonialSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    t = content.submit_testimonial(s.validated_data)
    return Response({
        'ok': True,
        'data': content.testimonial_to_dict(t),
        'message': 'Thank you. Your testimonial will be published after review.',
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def testimonials_all(request):
    q = ListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = Testimonial.objects.order_by('approved', '-date', '-id')
    return paginated_response(qs, content.testimonial_to_dict, q.validated_data)


@api_view(['PATCH'])
@permission_classes([IsAdminRole])
def testimonial_approve(request, pk: int):
    s = TestimonialApproveSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    t = content.set_testimonial_approved(pk, s.validated_data['approved'], actor=request.user)
    return Response({'ok': True, 'data': content.testimonial_to_dict(t)})


@api_view(['DELETE'])
@permission_classes([IsAdminRole])
def testimonial_delete(request, pk: int):
    content.delete_testimonial(pk, actor=request.user)
    return Response(status=status.HTTP_204_NO_CONTENT)
