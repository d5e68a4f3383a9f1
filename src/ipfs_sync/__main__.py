from ipfs_sync.cli.main import app

if __name__ == "__main__":  # pragma: no cover
    app()
