from __future__ import annotations

APP_NAME = "Version Code Override"
APP_VERSION = "1.0.0"

# Environment inputs, deprecated name first
LEGACY_ENV_VAR = "LEGACY_BUILD_VERSION"
CURRENT_ENV_VAR = "CURRENT_BUILD_VERSION"

ANDROID_NS = "http://schemas.android.com/apk/res/android"
ANDROID_PREFIX = "android"
VERSION_CODE_ATTR = "versionCode"
MANIFEST_FILENAME = "AndroidManifest.xml"

SUPPORTED_PLUGINS = ("com.android.application", "com.android.dynamic-feature")

MANIFEST_OUTPUT_DIRECTORY = "manifestOutputDirectory"
MANIFEST_OUTPUT_FILE = "manifestOutputFile"
AUXILIARY_MANIFEST_PROPERTIES = (
    "bundleManifestOutputDirectory",
    "metadataFeatureManifestOutputDirectory",
    "instantAppManifestOutputDirectory",
)

UNIT_NAME_TEMPLATE = "overrideVersionCode{variant}-{index}Manifest"
BUNDLE_RESOURCES_TEMPLATE = "bundle{variant}Resources"

HASH_ALGO_DEFAULT = "sha1"

# Upper bound of a signed 32-bit int, as the build pipeline parses it
MAX_VERSION_CODE = 2**31 - 1
