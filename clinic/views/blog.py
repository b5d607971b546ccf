"""
Blog views.  The public list and ``/api/blog/<slug>`` only show posts
that are published and whose publish date has passed; administrators
see drafts as well.
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from clinic.pagination import paginated_response
from clinic.permissions import IsAdminOrReadOnly, IsAdminRole, is_admin_user
from clinic.serializers.content import BlogPostSerializer, ListQuerySerializer
from clinic.services import content


@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def blog_posts(request):
    if request.method == 'GET':
        q = ListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = content.list_blog_posts(
            include_unpublished=is_admin_user(request.user),
            category=request.query_params.get('category'),
        )
        return paginated_response(qs, lambda b: content.blog_post_to_dict(b, full=False), q.validated_data)

    s = BlogPostSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    post = content.save_blog_post(s.validated_data, actor=request.user)
    return Response({'ok': True, 'data': content.blog_post_to_dict(post)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([AllowAny])
def blog_post_by_slug(request, slug: str):
    post = content.get_blog_post_by_slug(slug, include_unpublished=is_admin_user(request.user))
    return Response({'ok': True, 'data': content.blog_post_to_dict(post)})


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def blog_post_detail(request, pk: int):
    post = content.get_blog_post(pk)
    if request.method == 'DELETE':
        content.delete_blog_post(pk, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)
    s = BlogPostSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    post = content.save_blog_post(s.validated_data, post=post, actor=request.user)
    return Response({'ok': True, 'data': content.blog_post_to_dict(post)})
