"""
Constants
Build-tool markers, report locations and session-log layout.
"""

# Build system marker files
MAVEN_MARKER = "pom.xml"
GRADLE_MARKERS = ("build.gradle", "build.gradle.kts")

# Test report locations, relative to the project root
MAVEN_REPORT_DIR = ("target", "surefire-reports")
GRADLE_REPORT_DIR = ("build", "test-results", "test")
REPORT_FILE_GLOB = "TEST-*.xml"

# Session log layout
LOG_BANNER = "=" * 50
LOG_SEPARATOR = "-" * 50
