"""Constants shared across TestFairy Uploader services."""

CHANGE_LOG_FILE = "testfairy_change_log"

DEFAULT_SERVER = "https://upload.testfairy.com"
SERVER_VARIABLE = "TESTFAIRY_UPLOADER_SERVER"
CI_URL_VARIABLES = ("HUDSON_URL", "JENKINS_URL")
UPLOAD_ENDPOINT = "/api/upload/"
UPLOAD_SIGNED_ENDPOINT = "/api/upload-signed/"

DEFAULT_JARSIGNER = "jarsigner"
DEFAULT_ZIPALIGN = "zipalign"

DOWNLOAD_CHUNK_SIZE = 4096
ZIPALIGN_BOUNDARY = "4"
API_KEY_LENGTH = 40

MAX_DURATION_CHOICES = {
    "10m": "10 minutes",
    "60m": "1 hour",
    "300m": "5 hours",
    "1440m": "24 hours",
}
SCREENSHOT_INTERVAL_CHOICES = {
    "1": "1 second",
    "2": "2 seconds",
    "5": "5 seconds",
}
VIDEO_QUALITY_CHOICES = {
    "high": "High",
    "medium": "Medium",
    "low": "Low",
}

UPSTREAM_RESULTS = ("SUCCESS", "UNSTABLE", "FAILURE")
