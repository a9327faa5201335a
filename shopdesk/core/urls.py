from django.urls import path
from .views import (
    ShopDeskTokenObtainPairView, ShopDeskTokenRefreshView, user_me,
    user_list_create, user_detail,
    activity_log_list, activity_log_detail,
    notification_list, notification_detail, notification_mark_read,
    notification_mark_all_read, notification_clear,
    feature_flag_list_create, feature_flag_detail,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', ShopDeskTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', ShopDeskTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),

    # User endpoints (staff and shop admins)
    path('users/', user_list_create, name='user-list-create'),
    path('users/<int:pk>/', user_detail, name='user-detail'),

    # ActivityLog endpoints
    path('activity-logs/', activity_log_list, name='activity-log-list'),
    path('activity-logs/<int:pk>/', activity_log_detail, name='activity-log-detail'),

    # Notification endpoints
    path('notifications/', notification_list, name='notification-list'),
    path('notifications/mark-all-read/', notification_mark_all_read, name='notification-mark-all-read'),
    path('notifications/clear/', notification_clear, name='notification-clear'),
    path('notifications/<int:pk>/', notification_detail, name='notification-detail'),
    path('notifications/<int:pk>/mark-read/', notification_mark_read, name='notification-mark-read'),

    # FeatureFlag endpoints
    path('feature-flags/', feature_flag_list_create, name='feature-flag-list-create'),
    path('feature-flags/<int:pk>/', feature_flag_detail, name='feature-flag-detail'),
]
