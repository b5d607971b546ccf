from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.pagination import paginated_response
from clinic.permissions import IsAdminOrReadOnly
from clinic.serializers.content import ProductListQuerySerializer, ProductSerializer
from clinic.services import content


@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def products(request):
    if request.method == 'GET':
        q = ProductListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = content.list_products(
            category=q.validated_data.get('category'),
            featured=q.validated_data.get('featured'),
            q=q.validated_data.get('q'),
        )
        return paginated_response(qs, content.product_to_dict, q.validated_data)

    s = ProductSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    product = content.save_product(s.validated_data, actor=request.user)
    return Response({'ok': True, 'data': content.product_to_dict(product)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminOrReadOnly])
def product_detail(request, pk: int):
    product = content.get_product(pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': content.product_to_dict(product)})
    if request.method == 'DELETE':
        content.delete_product(pk, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)
    s = ProductSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    product = content.save_product(s.validated_data, product=product, actor=request.user)
    return Response({'ok': True, 'data': content.product_to_dict(product)})
