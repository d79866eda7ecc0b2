DEFAULT_ENV = "dev"
CONTEXT_KEY = "functional-vote"

# Naming convention components
SERVICE_NAME = "functional-vote"  # The application name
COMPONENT_FRONTEND = "frontend"  # Static site built and hosted by Amplify
COMPONENT_BACKEND = "backend"  # Container service behind the shared listener

# Front-end build recipe (single supported toolchain)
FRONTEND_APP_ROOT = "frontend"
FRONTEND_BUILD_COMMANDS = ("npm install", "npm run build")
FRONTEND_ARTIFACT_DIR = "build"
FRONTEND_ARTIFACT_GLOBS = ("**/*",)
FRONTEND_CACHE_PATHS = ("node_modules/**/*",)
FRONTEND_BUILD_SPEC_VERSION = "1.0"
FRONTEND_SITE_KEY_ENV = "RECAPTCHA_PUBLIC_KEY"
GITHUB_URL = "https://github.com/{owner}/{repo}"
DEFAULT_AUTH_TOKEN_PARAMETER = "github-personal-access-token"

# Redirect every path that is not a static asset to index.html
# https://docs.aws.amazon.com/amplify/latest/userguide/redirects.html
SPA_REDIRECT_SOURCE = (
    "</^[^.]+$|\\.(?!(css|gif|ico|jpg|js|png|txt|svg|woff|ttf)$)([^.]+$)/>"
)
SPA_REDIRECT_TARGET = "/index.html"
SPA_REDIRECT_STATUS = "200"

# Back-end defaults
DEFAULT_CPU = 256
DEFAULT_MEMORY_MIB = 512
DEFAULT_PORT = 4000
DEFAULT_DESIRED_COUNT = 1
DEFAULT_LOG_RETENTION_DAYS = 14
DEFAULT_LISTENER_PROTOCOL = "HTTPS"
DEFAULT_LISTENER_TAG_KEY = "Name"
DEFAULT_HEALTH_CHECK_PATH = "/"
TARGET_GROUP_PROTOCOL = "HTTP"
PORT_ENV = "PORT"
LOG_GROUP_PREFIX = "/ecs"

# Fargate accepted task sizes: cpu units -> memory MiB
FARGATE_TASK_SIZES = {
    256: (512, 1024, 2048),
    512: tuple(range(1024, 4096 + 1, 1024)),
    1024: tuple(range(2048, 8192 + 1, 1024)),
    2048: tuple(range(4096, 16384 + 1, 1024)),
    4096: tuple(range(8192, 30720 + 1, 1024)),
    8192: tuple(range(16384, 61440 + 1, 4096)),
    16384: tuple(range(32768, 122880 + 1, 8192)),
}

# CloudWatch Logs accepted retention periods, in days
LOG_RETENTION_DAYS = (
    1, 3, 5, 7, 14, 30, 60, 90, 120, 150, 180, 365, 400, 545, 731, 1096,
    1827, 2192, 2557, 2922, 3288, 3653,
)

MIN_PORT = 1
MAX_PORT = 65535
MAX_RULE_PRIORITY = 50000
MAX_HOST_HEADERS = 5
MAX_TARGET_GROUP_NAME_LENGTH = 32
TARGET_GROUP_NAME_PREFIX = "fv"  # target group names are capped at 32 characters

# Environment variable names that must never carry a literal value
SENSITIVE_ENV_MARKERS = (
    "SECRET",
    "PASSWORD",
    "TOKEN",
    "CREDENTIAL",
    "API_KEY",
    "APIKEY",
    "PRIVATE_KEY",
    "DATABASE_URL",
)
# Connection strings of datastores, matched as the whole name or a _-suffix
SENSITIVE_ENV_NAMES = (
    "DB_URL",
    "DB_URI",
    "DATABASE_URI",
    "POSTGRES_URL",
    "MYSQL_URL",
    "MONGO_URL",
    "MONGODB_URI",
    "REDIS_URL",
    "AMQP_URL",
)
