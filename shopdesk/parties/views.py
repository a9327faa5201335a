from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from django.shortcuts import get_object_or_404
from shopdesk.core.context import ShopContext
from shopdesk.core.permissions import IsSalesStaff, IsShopAdmin
from shopdesk.core.tables import Column, Table, FILTER_SELECT, FILTER_TEXT, table_response
from shopdesk.core.utils import create_activity_log
from .models import Client, Provider
from .serializers import ClientSerializer, ProviderSerializer

CLIENT_TABLE = Table([
    Column('name', filter_type=FILTER_TEXT),
    Column('id_number', label='ID number', filter_type=FILTER_TEXT),
    Column('phone', filter_type=FILTER_TEXT),
    Column('email', filter_type=FILTER_TEXT),
    Column('status', filter_type=FILTER_SELECT, options=[choice for choice, _ in Client.STATUS_CHOICES]),
    Column('unpaid_balance', label='Unpaid balance'),
])

PROVIDER_TABLE = Table([
    Column('name', label='Provider name', filter_type=FILTER_TEXT),
    Column('document', label='CIF/DNI/Passport', filter_type=FILTER_TEXT),
    Column('phone', filter_type=FILTER_TEXT),
    Column('balance'),
])


def _no_shop_response():
    return Response({'error': 'No shop selected', 'message': 'Select the shop to act for.'},
                    status=status.HTTP_400_BAD_REQUEST)


# Client views
@api_view(['GET', 'POST'])
@permission_classes([IsSalesStaff])
def client_list_create(request):
    """List all clients of the shop or create a new client"""
    ctx = ShopContext.from_request(request)
    if request.method == 'GET':
        clients = ctx.scope(Client.objects.all())
        return table_response(request, CLIENT_TABLE, clients, ClientSerializer)

    if ctx.shop is None:
        return _no_shop_response()
    serializer = ClientSerializer(data=request.data)
    if serializer.is_valid():
        client = serializer.save(shop=ctx.shop)
        create_activity_log(ctx=ctx, action='create', model_name='Client', object_id=client.id,
                            object_name=client.name)
        return Response(ClientSerializer(client).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsSalesStaff])
def client_detail(request, pk):
    """Retrieve, update or delete a client"""
    ctx = ShopContext.from_request(request)
    client = get_object_or_404(ctx.scope(Client.objects.all()), pk=pk)

    if request.method == 'GET':
        return Response(ClientSerializer(client).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ClientSerializer(client, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_activity_log(ctx=ctx, action='update', model_name='Client', object_id=client.id,
                                object_name=client.name, shop=client.shop,
                                changes={key: str(value) for key, value in serializer.validated_data.items()})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if not ctx.is_shop_admin:
            return Response({'error': 'Only shop admins can delete clients'}, status=status.HTTP_403_FORBIDDEN)
        create_activity_log(ctx=ctx, action='delete', model_name='Client', object_id=client.id,
                            object_name=client.name, shop=client.shop)
        if client.sales.exists():
            client.status = 'inactive'
            client.save(update_fields=['status', 'updated_at'])
        else:
            client.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Provider views
@api_view(['GET', 'POST'])
@permission_classes([IsShopAdmin])
def provider_list_create(request):
    """List all providers of the shop or create a new provider"""
    ctx = ShopContext.from_request(request)
    if request.method == 'GET':
        providers = ctx.scope(Provider.objects.all())
        return table_response(request, PROVIDER_TABLE, providers, ProviderSerializer)

    if ctx.shop is None:
        return _no_shop_response()
    serializer = ProviderSerializer(data=request.data)
    if serializer.is_valid():
        provider = serializer.save(shop=ctx.shop)
        create_activity_log(ctx=ctx, action='create', model_name='Provider', object_id=provider.id,
                            object_name=provider.name)
        return Response(ProviderSerializer(provider).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsShopAdmin])
def provider_detail(request, pk):
    """Retrieve, update or delete a provider"""
    ctx = ShopContext.from_request(request)
    provider = get_object_or_404(ctx.scope(Provider.objects.all()), pk=pk)

    if request.method == 'GET':
        return Response(ProviderSerializer(provider).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProviderSerializer(provider, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_activity_log(ctx=ctx, action='update', model_name='Provider', object_id=provider.id,
                                object_name=provider.name, shop=provider.shop)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_activity_log(ctx=ctx, action='delete', model_name='Provider', object_id=provider.id,
                            object_name=provider.name, shop=provider.shop)
        provider.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
