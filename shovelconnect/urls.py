from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from drf_yasg.views import get_schema_view
from drf_yasg import openapi
from rest_framework import permissions

schema_view = get_schema_view(
    openapi.Info(
        title="A Kid and a Shovel API",
        default_version='v1',
        description="API for the A Kid and a Shovel snow removal marketplace",
    ),
    public=True,
    permission_classes=[permissions.AllowAny],
)

urlpatterns = [
    path('', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('admin/', admin.site.urls),
    path('api/', include('apps.users.urls')),
    path('api/', include('apps.jobs.urls')),
    path('api/', include('apps.earnings.urls')),
] + static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
