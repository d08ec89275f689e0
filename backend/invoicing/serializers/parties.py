from rest_framework import serializers

from ..models import Client, Company, File


class ClientSerializer(serializers.ModelSerializer):
    fullName = serializers.CharField(source='full_name')
    mobileNumber = serializers.CharField(source='mobile_number', required=False, allow_null=True, allow_blank=True)
    commissionRate = serializers.FloatField(source='commission_rate', required=False)
    isActive = serializers.BooleanField(source='is_active', required=False)
    createdBy = serializers.PrimaryKeyRelatedField(source='created_by', read_only=True)

    class Meta:
        model = Client
        fields = ('id', 'fullName', 'mobileNumber', 'commissionRate', 'isActive', 'createdBy')


class CompanySerializer(serializers.ModelSerializer):
    commissionRate = serializers.FloatField(source='commission_rate', required=False)
    isActive = serializers.BooleanField(source='is_active', required=False)
    createdBy = serializers.PrimaryKeyRelatedField(source='created_by', read_only=True)

    class Meta:
        model = Company
        fields = ('id', 'name', 'commissionRate', 'isActive', 'createdBy')


class FileSerializer(serializers.ModelSerializer):
    fileName = serializers.CharField(source='file_name')
    company = serializers.PrimaryKeyRelatedField(
        queryset=Company.objects.all(), required=False, allow_null=True
    )
    companyName = serializers.CharField(source='company.name', read_only=True, default=None)
    createdBy = serializers.PrimaryKeyRelatedField(source='created_by', read_only=True)

    class Meta:
        model = File
        fields = ('id', 'fileName', 'company', 'companyName', 'createdBy')
