"""Command line interface for checking configuration loading"""
from . import settings_conf, mask_settings, feature_enabled, FEATURES


def main():
    """Display loaded configuration"""
    print("\nSettings Configuration:")
    print("-" * 50)
    for key, value in sorted(mask_settings(settings_conf).items()):
        print(f"{key}: {value}")

    print("\nIntegrations:")
    print("-" * 50)
    for name in FEATURES:
        print(f"{name}: {'enabled' if feature_enabled(name) else 'disabled'}")


if __name__ == "__main__":
    main()
