"""Configuration utilities for ZimEstimate MCP."""

from pathlib import Path

EXAMPLE_CONFIG = """\
# ZimEstimate MCP Configuration

name: "ZimEstimate"
owner_id: "local"
# free accounts keep up to projects.free_project_limit open projects
tier: "free"

estimator:
  wall_height: 2.7
  door_area: 2.0
  window_area: 1.5
  default_wastage_percent: 10

editor:
  grid_snap_size: 0.5
  pixels_per_meter: 40
  snap_to_grid: true
  draft_max_age_hours: 24

pricing:
  zwg_rate: 30
  cache_ttl_seconds: 300
  lookback_days: 30
  # JSON price feeds to import with 'zimestimate prices import'
  feeds: []
    # - id: halsteds
    #   name: Halsteds Builders Express
    #   url: "https://example.com/prices.json"
    #   currency: USD
    #   location: Harare

storage:
  db_path: "~/.local/share/zimestimate/state.db"

projects:
  free_project_limit: 3
"""

EXAMPLE_SECRETS = """\
# ZimEstimate MCP Secrets
# This file contains sensitive credentials - DO NOT COMMIT TO GIT
# Add this file to .gitignore

# Bearer tokens for price feeds, keyed by feed id
feeds: {}
  # halsteds:
  #   token: "xxxxxxxx"
"""


def validate_config(config_dir: str | None = None) -> bool:
    """Validate configuration files.

    Args:
        config_dir: Path to config directory

    Returns:
        True if valid, False otherwise
    """
    from config import find_config_dir, get_feed_secret, load_config, load_secrets

    if config_dir:
        cfg_path = Path(config_dir)
    else:
        cfg_path = find_config_dir()

    print(f"Validating configuration in: {cfg_path}")
    print()

    errors = []
    warnings = []
    config = None

    # Check config.yaml exists
    config_file = cfg_path / "config.yaml"
    if not config_file.exists():
        errors.append(f"config.yaml not found at {config_file}")
    else:
        print("✓ Found config.yaml")

        try:
            config = load_config(cfg_path)
            print("✓ config.yaml is valid")
            print(f"  Name: {config.name}")
            print(f"  Owner: {config.owner_id} ({config.tier})")
            print(f"  Price feeds: {len(config.pricing.feeds)}")
            print(f"  Database: {config.storage.db_path or 'default'}")

            if not config.pricing.feeds:
                warnings.append("No price feeds defined - prices come from the static catalog")

            feed_ids = [f.id for f in config.pricing.feeds]
            for feed_id in sorted({f for f in feed_ids if feed_ids.count(f) > 1}):
                errors.append(f"Price feed id '{feed_id}' is defined more than once")
            for feed in config.pricing.feeds:
                if not feed.url.startswith(("http://", "https://")):
                    errors.append(f"Price feed '{feed.id}' url must start with http:// or https://")

        except Exception as e:
            errors.append(f"Failed to parse config.yaml: {e}")

    print()

    # Check secrets.yaml exists
    secrets_file = cfg_path / "secrets.yaml"
    if not secrets_file.exists():
        warnings.append(f"secrets.yaml not found at {secrets_file}")
        print("⚠ secrets.yaml not found (optional)")
    else:
        print("✓ Found secrets.yaml")

        try:
            secrets = load_secrets(cfg_path)
            print("✓ secrets.yaml is valid")

            if config:
                feed_ids = {f.id for f in config.pricing.feeds}
                for feed_id in secrets.feeds:
                    if feed_id not in feed_ids:
                        warnings.append(f"Secrets given for unknown price feed '{feed_id}'")
                    elif get_feed_secret(secrets, feed_id, "token"):
                        print(f"  Feed {feed_id}: token configured")

        except Exception as e:
            errors.append(f"Failed to parse secrets.yaml: {e}")

    print()

    # Print summary
    if errors:
        print("Errors:")
        for e in errors:
            print(f"  ✗ {e}")
        print()

    if warnings:
        print("Warnings:")
        for w in warnings:
            print(f"  ⚠ {w}")
        print()

    if not errors:
        print("✓ Configuration is valid")
        return True
    else:
        print("✗ Configuration has errors")
        return False


def init_config(config_dir: str = "./config") -> None:
    """Create example configuration files.

    Args:
        config_dir: Path to config directory
    """
    cfg_path = Path(config_dir)

    print(f"Initializing configuration in: {cfg_path}")
    print()

    if not cfg_path.exists():
        cfg_path.mkdir(parents=True)
        print(f"✓ Created directory: {cfg_path}")

    config_file = cfg_path / "config.yaml"
    if config_file.exists():
        print("⚠ config.yaml already exists, skipping")
    else:
        config_file.write_text(EXAMPLE_CONFIG)
        print("✓ Created config.yaml")

    secrets_file = cfg_path / "secrets.yaml"
    if secrets_file.exists():
        print("⚠ secrets.yaml already exists, skipping")
    else:
        secrets_file.write_text(EXAMPLE_SECRETS)
        print("✓ Created secrets.yaml")

    # Check/update .gitignore
    gitignore = cfg_path.parent / ".gitignore"
    secrets_pattern = "config/secrets.yaml"

    if gitignore.exists():
        content = gitignore.read_text()
        if secrets_pattern not in content and "secrets.yaml" not in content:
            print()
            print("⚠ Warning: secrets.yaml should be in .gitignore")
            print(f"  Add this line to .gitignore: {secrets_pattern}")
    else:
        print()
        print("⚠ Warning: No .gitignore found")
        print(f"  Create one and add: {secrets_pattern}")

    print()
    print("Next steps:")
    print("  1. Edit config/config.yaml with your exchange rate and price feeds")
    print("  2. Add feed tokens to config/secrets.yaml")
    print("  3. Run 'zimestimate config validate' to check your config")
    print("  4. Run 'zimestimate prices import' to load current prices")
