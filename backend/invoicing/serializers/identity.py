from rest_framework import serializers

from ..models import Permission, Role, User


class PermissionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Permission
        fields = ('id', 'module', 'action', 'description')


class RoleSerializer(serializers.ModelSerializer):
    displayName = serializers.CharField(source='display_name', required=False, allow_blank=True)
    isSystemRole = serializers.BooleanField(source='is_system_role', read_only=True)
    permissions = serializers.PrimaryKeyRelatedField(queryset=Permission.objects.all(), many=True, required=False)

    class Meta:
        model = Role
        fields = ('id', 'name', 'displayName', 'description', 'isSystemRole', 'permissions')


class DistributorSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, required=False)
    fullName = serializers.CharField(source='first_name', required=False, allow_blank=True)
    commissionRate = serializers.FloatField(source='commission_rate', required=False)
    whatsappNumber = serializers.CharField(
        source='whatsapp_number', required=False, allow_null=True, allow_blank=True
    )
    isActive = serializers.BooleanField(source='is_active', required=False)
    roles = serializers.PrimaryKeyRelatedField(queryset=Role.objects.all(), many=True, required=False)
    createdBy = serializers.PrimaryKeyRelatedField(source='created_by', read_only=True)

    class Meta:
        model = User
        fields = (
            'id', 'username', 'email', 'fullName', 'password', 'role', 'commissionRate',
            'whatsappNumber', 'isActive', 'roles', 'createdBy',
        )
        read_only_fields = ('id', 'role', 'createdBy')

    def validate(self, data):
        if self.instance is None and not data.get('password'):
            raise serializers.ValidationError({'password': 'Password is required.'})
        return data

    def create(self, validated_data):
        roles = validated_data.pop('roles', [])
        validated_data.setdefault('role', User.ROLE_DISTRIBUTOR)
        user = User.objects.create_user(**validated_data)
        if roles:
            user.roles.set(roles)
        return user

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        user = super().update(instance, validated_data)
        if password:
            user.set_password(password)
            user.save()
        return user
