"""Base settings for the Mail Route Booking Service."""
import os
from pathlib import Path

from celery.schedules import crontab

BASE_DIR = Path(__file__).resolve().parent.parent.parent

SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key')
DEBUG = os.environ.get('DEBUG', 'True').lower() == 'true'
ALLOWED_HOSTS = os.environ.get('ALLOWED_HOSTS', '*').split(',')

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'corsheaders',
    'django_filters',
    'drf_spectacular',
    'apps.booking',
    'apps.api',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'shared.common.middleware.RequestIDMiddleware',
    'shared.common.middleware.LoggingMiddleware',
]

ROOT_URLCONF = 'config.urls'
TEMPLATES = [{'BACKEND': 'django.template.backends.django.DjangoTemplates', 'DIRS': [], 'APP_DIRS': True, 'OPTIONS': {'context_processors': ['django.template.context_processors.debug', 'django.template.context_processors.request', 'django.contrib.auth.context_processors.auth', 'django.contrib.messages.context_processors.messages']}}]
WSGI_APPLICATION = 'config.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.environ.get('DB_NAME', 'mailroute_booking_db'),
        'USER': os.environ.get('DB_USER', 'mailroute_booking_user'),
        'PASSWORD': os.environ.get('DB_PASSWORD', 'mailroute_booking_password'),
        'HOST': os.environ.get('DB_HOST', 'localhost'),
        'PORT': os.environ.get('DB_PORT', '5432'),
        'ATOMIC_REQUESTS': False,
    }
}

AUTH_PASSWORD_VALIDATORS = [{'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'}]
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
MEDIA_URL = 'media/'
MEDIA_ROOT = Path(os.environ.get('MEDIA_ROOT', BASE_DIR / 'media'))
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': ['shared.common.authentication.JWTAuthentication'],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.IsAuthenticated'],
    'DEFAULT_PAGINATION_CLASS': 'shared.common.pagination.StandardPagination',
    'PAGE_SIZE': 20,
    'DEFAULT_FILTER_BACKENDS': ['django_filters.rest_framework.DjangoFilterBackend', 'rest_framework.filters.SearchFilter', 'rest_framework.filters.OrderingFilter'],
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'EXCEPTION_HANDLER': 'shared.common.exceptions.custom_exception_handler',
}

SPECTACULAR_SETTINGS = {
    'TITLE': 'Mail Route Booking API',
    'DESCRIPTION': 'Slot booking, pricing and artwork workflow for direct-mail campaigns.',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
}

CORS_ALLOW_ALL_ORIGINS = DEBUG
REDIS_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
CACHES = {'default': {'BACKEND': 'django_redis.cache.RedisCache', 'LOCATION': REDIS_URL}}

# Celery
CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', REDIS_URL)
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', REDIS_URL)
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_TIME_LIMIT = 300  # 5 minutes

CELERY_BEAT_SCHEDULE = {
    'expire-pending-bookings': {
        'task': 'booking.expire_pending_bookings',
        'schedule': crontab(minute='*'),  # Every minute
    },
    'reconcile-campaign-counters': {
        'task': 'booking.reconcile_campaign_counters',
        'schedule': crontab(minute=0, hour='*/6'),
    },
}

# Events: 'log' or 'redis'
EVENT_BACKEND = os.environ.get('EVENT_BACKEND', 'log')

EMAIL_BACKEND = os.environ.get('EMAIL_BACKEND', 'django.core.mail.backends.smtp.EmailBackend')
DEFAULT_FROM_EMAIL = os.environ.get('DEFAULT_FROM_EMAIL', 'bookings@example.com')

JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY', SECRET_KEY)
JWT_ALGORITHM = os.environ.get('JWT_ALGORITHM', 'HS256')
JWT_ACCESS_TOKEN_LIFETIME = int(os.environ.get('JWT_ACCESS_TOKEN_LIFETIME', 3600))

SERVICE_NAME = 'mailroute-booking'
SERVICE_VERSION = '1.0.0'

# Slot inventory
SLOTS_PER_ROUTE = int(os.environ.get('SLOTS_PER_ROUTE', 16))
DEFAULT_CAMPAIGN_TOTAL_SLOTS = int(os.environ.get('DEFAULT_CAMPAIGN_TOTAL_SLOTS', 64))
MAX_SLOTS_PER_BOOKING = 4
SLOT_RESERVATION_MAX_RETRIES = int(os.environ.get('SLOT_RESERVATION_MAX_RETRIES', 3))
SLOT_RESERVATION_RETRY_BACKOFF = float(os.environ.get('SLOT_RESERVATION_RETRY_BACKOFF', 0.05))

# Pricing (cents)
DEFAULT_FIRST_SLOT_PRICE = int(os.environ.get('DEFAULT_FIRST_SLOT_PRICE', 60000))
DEFAULT_ADDITIONAL_SLOT_PRICE = int(os.environ.get('DEFAULT_ADDITIONAL_SLOT_PRICE', 50000))
LOYALTY_SLOTS_THRESHOLD = int(os.environ.get('LOYALTY_SLOTS_THRESHOLD', 3))
LOYALTY_DISCOUNT_AMOUNT = int(os.environ.get('LOYALTY_DISCOUNT_AMOUNT', 15000))
REFERRAL_CREDIT_AMOUNT = int(os.environ.get('REFERRAL_CREDIT_AMOUNT', 10000))

# Booking workflow
MAX_DESIGN_REVISIONS = 2
PENDING_BOOKING_EXPIRATION_MINUTES = int(os.environ.get('PENDING_BOOKING_EXPIRATION_MINUTES', 15))
REFUND_WINDOW_DAYS = int(os.environ.get('REFUND_WINDOW_DAYS', 7))
REFUND_PROCESSING_FEE_PERCENT = int(os.environ.get('REFUND_PROCESSING_FEE_PERCENT', 3))
ARTWORK_REQUIRES_PAYMENT = os.environ.get('ARTWORK_REQUIRES_PAYMENT', 'True').lower() == 'true'
CONTRACT_VERSION = os.environ.get('CONTRACT_VERSION', '1.0')

LOGGING = {'version': 1, 'disable_existing_loggers': False, 'formatters': {'json': {'()': 'pythonjsonlogger.jsonlogger.JsonFormatter', 'format': '%(asctime)s %(levelname)s %(name)s %(message)s'}}, 'handlers': {'console': {'class': 'logging.StreamHandler', 'formatter': 'json'}}, 'root': {'handlers': ['console'], 'level': 'INFO'}}
