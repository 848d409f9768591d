from rest_framework import serializers

# Upper bound of the PositiveIntegerField backing LineItem.quantity
MAX_QUANTITY = 2147483647


class LineItemReadSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    product = serializers.IntegerField(source="product_id", allow_null=True)
    title = serializers.CharField()
    price = serializers.CharField()
    image = serializers.CharField(allow_blank=True)
    quantity = serializers.IntegerField()


class CartReadSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    user = serializers.IntegerField(source="user_id", allow_null=True)
    lineItems = LineItemReadSerializer(source="line_items", many=True)


class CartItemWriteSerializer(serializers.Serializer):
    # Product ids are compared as strings against line items; accept JSON numbers too
    productId = serializers.CharField(max_length=64)
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_QUANTITY)


class CartItemRemoveSerializer(serializers.Serializer):
    productId = serializers.CharField(max_length=64)
