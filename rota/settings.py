import json
from pathlib import Path
from decouple import config, Csv  # type: ignore
from datetime import timedelta

STAFF_ROLES_CHOICES = [
    ('EMPLOYEE', 'Employee'),
    ('MANAGER', 'Manager'),
    ('ADMIN', 'Admin'),
]
MANAGER_ROLES = ('MANAGER', 'ADMIN')

# ---------------------------
# Base
# ---------------------------
BASE_DIR = Path(__file__).resolve().parent.parent


SECRET_KEY = config('SECRET_KEY', default='django-insecure-change-this-in-production!')
DEBUG = config('DEBUG', default=True, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1,0.0.0.0', cast=Csv())

# ---------------------------
# Installed Apps
# ---------------------------
INSTALLED_APPS = [
    # Django apps
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'django_filters',

    # Third-party apps
    'rest_framework',
    'rest_framework_simplejwt',
    'corsheaders',
    'channels',
    'drf_spectacular',

    # Local apps
    'core',
    'accounts',
    'scheduling',
    'timeclock',
    'notifications',
    'reporting',
]

# ---------------------------
# Middleware
# ---------------------------
MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',                      # MUST be first for CORS
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

# ---------------------------
# URLs
# ---------------------------
ROOT_URLCONF = 'rota.urls'
WSGI_APPLICATION = 'rota.wsgi.application'
ASGI_APPLICATION = 'rota.asgi.application'

# ---------------------------
# Templates
# ---------------------------
TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

# ---------------------------
# Database
# ---------------------------
USE_SQLITE = config('USE_SQLITE', default=True, cast=bool)

DATABASES = (
    {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }
    if USE_SQLITE
    else {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": config("POSTGRES_DB", default="rota_db"),
            "USER": config("POSTGRES_USER", default="rota"),
            "PASSWORD": config("POSTGRES_PASSWORD", default=""),
            "HOST": config("POSTGRES_HOST", default="localhost"),
            "PORT": config("POSTGRES_PORT", default="5432"),
        }
    }
)


# ---------------------------
# Password validation
# ---------------------------
AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

# ---------------------------
# Internationalization
# ---------------------------
LANGUAGE_CODE = 'en-gb'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# ---------------------------
# Static files
# ---------------------------
STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# ---------------------------
# REST Framework / JWT
# ---------------------------
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
    ],
    'DEFAULT_FILTER_BACKENDS': [
        'django_filters.rest_framework.DjangoFilterBackend',
    ],
    'EXCEPTION_HANDLER': 'core.exceptions.api_exception_handler',
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(hours=config('JWT_ACCESS_HOURS', default=12, cast=int)),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=30),
}

SPECTACULAR_SETTINGS = {
    'TITLE': 'Rota API',
    'DESCRIPTION': 'Shift scheduling, time tracking and staff cost analytics',
    'VERSION': '1.0.0',
}

# ---------------------------
# CORS Settings
# ---------------------------
CORS_ALLOWED_ORIGINS = config(
    'CORS_ALLOWED_ORIGINS',
    default='http://localhost:5173,http://127.0.0.1:5173,http://localhost:8080',
    cast=Csv(),
)
CORS_ALLOW_CREDENTIALS = True

# ---------------------------
# Channels (WebSockets)
# ---------------------------
REDIS_URL = config('REDIS_URL', default='')

if REDIS_URL:
    CHANNEL_LAYERS = {
        "default": {
            "BACKEND": "channels_redis.core.RedisChannelLayer",
            "CONFIG": {
                "hosts": [REDIS_URL],
            },
        },
    }
else:
    CHANNEL_LAYERS = {
        "default": {
            "BACKEND": "channels.layers.InMemoryChannelLayer",
        },
    }

# ---------------------------
# Celery
# ---------------------------
CELERY_BROKER_URL = config('CELERY_BROKER_URL', default=REDIS_URL or 'memory://')
CELERY_RESULT_BACKEND = config('CELERY_RESULT_BACKEND', default=None)
CELERY_TIMEZONE = TIME_ZONE

# ---------------------------
# Custom user model
# ---------------------------
AUTH_USER_MODEL = 'accounts.CustomUser'

# ---------------------------
# Logging
# ---------------------------
LOG_LEVEL = config('LOG_LEVEL', default='INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': config('DJANGO_LOG_LEVEL', default='WARNING'),
            'propagate': False,
        },
        **{
            app: {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False}
            for app in ('accounts', 'scheduling', 'timeclock', 'notifications', 'reporting', 'core')
        },
    },
}

# ---------------------------
# Workforce rules (organization settings override these)
# ---------------------------
DEFAULT_GEOFENCE_RADIUS_METRES = config('DEFAULT_GEOFENCE_RADIUS_METRES', default=100, cast=int)
DEFAULT_CLOCK_IN_WINDOW_MINUTES = config('DEFAULT_CLOCK_IN_WINDOW_MINUTES', default=15, cast=int)
DEFAULT_LATE_GRACE_MINUTES = config('DEFAULT_LATE_GRACE_MINUTES', default=0, cast=int)
DEFAULT_CLOCK_OUT_GRACE_MINUTES = config('DEFAULT_CLOCK_OUT_GRACE_MINUTES', default=15, cast=int)
DEFAULT_BREAK_RULES = config(
    'DEFAULT_BREAK_RULES',
    default='[{"min_hours": 4, "break_minutes": 15}, '
            '{"min_hours": 6, "break_minutes": 30}, '
            '{"min_hours": 8, "break_minutes": 60}]',
    cast=json.loads,
)

# ---------------------------
# Payroll (UK employer costs)
# ---------------------------
HOLIDAY_ACCRUAL_RATE = config('HOLIDAY_ACCRUAL_RATE', default='0.1207')
EMPLOYER_CONTRIBUTION_RATE = config('EMPLOYER_CONTRIBUTION_RATE', default='0.138')
EMPLOYER_CONTRIBUTION_WEEKLY_THRESHOLD = config('EMPLOYER_CONTRIBUTION_WEEKLY_THRESHOLD', default='175')
EMPLOYEE_CONTRIBUTION_MAIN_RATE = config('EMPLOYEE_CONTRIBUTION_MAIN_RATE', default='0.08')
EMPLOYEE_CONTRIBUTION_UPPER_RATE = config('EMPLOYEE_CONTRIBUTION_UPPER_RATE', default='0.02')
EMPLOYEE_CONTRIBUTION_WEEKLY_LOWER = config('EMPLOYEE_CONTRIBUTION_WEEKLY_LOWER', default='242')
EMPLOYEE_CONTRIBUTION_WEEKLY_UPPER = config('EMPLOYEE_CONTRIBUTION_WEEKLY_UPPER', default='967')
