import bleach
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

User = get_user_model()


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField()

    def validate_username(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('Username is required.')
        return v

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Password is required.')
        return v


class RegisterSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)

    def validate_username(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if User.objects.filter(username__iexact=v).exists():
            raise serializers.ValidationError('This username is already taken.')
        return v

    def validate_email(self, v):
        if User.objects.filter(email__iexact=v).exists():
            raise serializers.ValidationError('This email is already registered.')
        return v.lower()

    def validate(self, attrs):
        candidate = User(username=attrs['username'], email=attrs['email'])
        try:
            validate_password(attrs['password'], user=candidate)
        except DjangoValidationError as e:
            raise serializers.ValidationError({'password': e.messages})
        return attrs


class UserApprovalSerializer(serializers.Serializer):
    isApproved = serializers.BooleanField(source='is_approved')


class UserRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=['customer', 'doctor', 'admin'])


class UserListQuerySerializer(serializers.Serializer):
    approved = serializers.BooleanField(required=False, allow_null=True, default=None)
    role = serializers.ChoiceField(choices=['customer', 'doctor', 'admin'], required=False)
    q = serializers.CharField(max_length=64, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    pageSize = serializers.IntegerField(min_value=1, max_value=200, required=False)
