"""Command line interface for checking configuration loading"""
from pathlib import Path

from . import settings_conf, DEFAULTS

def main():
    """Display loaded configuration"""
    print("\nSettings Configuration:")
    print("-" * 50)
    for key, value in settings_conf.items():
        print(f"{key}: {value}")
        
    # Save example configuration file
    examples_dir = Path("examples")
    examples_dir.mkdir(exist_ok=True)
    
    with open(examples_dir / "settings.conf.example", "w") as f:
        f.write("[DEFAULT]\n")
        f.write("# Every key is optional; MARKET_<KEY> environment variables override the file\n")
        for key, value in DEFAULTS.items():
            f.write(f"{key} = {value}\n")
            
    print(f"\nWrote {examples_dir / 'settings.conf.example'}")

if __name__ == "__main__":
    main()
