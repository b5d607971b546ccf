from rest_framework import serializers

from clinic.sanitize import clean_html, clean_text


class ProductSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    category = serializers.CharField(max_length=128)
    description = serializers.CharField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    imageUrl = serializers.URLField(max_length=1024, source='image_url')
    discount = serializers.IntegerField(min_value=0, max_value=100, required=False, allow_null=True)
    inStock = serializers.BooleanField(required=False, source='in_stock')
    featured = serializers.BooleanField(required=False)

    def validate(self, attrs):
        for key in ('name', 'category', 'description'):
            if key in attrs:
                attrs[key] = clean_text(attrs[key])
        return attrs


class ProductListQuerySerializer(serializers.Serializer):
    category = serializers.CharField(max_length=128, required=False)
    featured = serializers.BooleanField(required=False, allow_null=True, default=None)
    q = serializers.CharField(max_length=64, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    pageSize = serializers.IntegerField(min_value=1, max_value=200, required=False)


class BlogPostSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    slug = serializers.SlugField(max_length=255, required=False, allow_blank=True)
    category = serializers.CharField(max_length=128)
    content = serializers.CharField()
    excerpt = serializers.CharField()
    imageUrl = serializers.URLField(max_length=1024, source='image_url')
    published = serializers.BooleanField(required=False)
    publishDate = serializers.DateTimeField(required=False, source='publish_date')

    def validate(self, attrs):
        for key in ('title', 'category', 'excerpt'):
            if key in attrs:
                attrs[key] = clean_text(attrs[key])
        if 'content' in attrs:
            attrs['content'] = clean_html(attrs['content'])
        return attrs


class TestimonialSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=128)
    role = serializers.CharField(max_length=128)
    content = serializers.CharField(max_length=2000)
    rating = serializers.IntegerField(min_value=1, max_value=5)

    def validate(self, attrs):
        for key in ('name', 'role', 'content'):
            attrs[key] = clean_text(attrs[key])
            if not attrs[key]:
                raise serializers.ValidationError({key: ['This field may not be blank.']})
        return attrs


class TestimonialApproveSerializer(serializers.Serializer):
    approved = serializers.BooleanField(required=False, default=True)


class ContactMessageSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=128)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    subject = serializers.CharField(max_length=255)
    message = serializers.CharField(max_length=5000)

    def validate(self, attrs):
        for key in ('name', 'phone', 'subject', 'message'):
            if key in attrs:
                attrs[key] = clean_text(attrs[key])
        return attrs


class ContactReadSerializer(serializers.Serializer):
    processed = serializers.BooleanField(required=False, default=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class ContactReplySerializer(serializers.Serializer):
    reply = serializers.CharField(max_length=5000)

    def validate_reply(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Reply may not be blank.')
        return v


class LegalSettingsSerializer(serializers.Serializer):
    privacyPolicy = serializers.CharField(required=False, allow_blank=True, source='privacy_policy')
    cookiesPolicy = serializers.CharField(required=False, allow_blank=True, source='cookies_policy')
    termsAndConditions = serializers.CharField(required=False, allow_blank=True, source='terms_and_conditions')

    def validate(self, attrs):
        return {k: clean_html(v) for k, v in attrs.items()}


class ListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, required=False)
    pageSize = serializers.IntegerField(min_value=1, max_value=200, required=False)
