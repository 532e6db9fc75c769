from rest_framework import serializers


class StockAdjustmentSerializer(serializers.Serializer):
    """Conteo físico: la cantidad pasa a ser exactamente la indicada"""
    quantity = serializers.IntegerField(min_value=0)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)
