import os

from huggingface_hub import snapshot_download
from eventrank import config


def main() -> None:
    # Pre-fetch the local cross-encoders so LocalCrossEncoder can run with HF_HUB_OFFLINE=1
    os.environ["HF_HUB_OFFLINE"] = "0"

    pinned = os.environ.get(config.RERANKER_MODEL_ENV, "").strip()
    repos = [pinned] if pinned else list(config.LOCAL_RERANKER_MODELS)

    paths = {}
    for repo_id in repos:
        print(f"\nDownloading repo: {repo_id}")
        local_path = snapshot_download(repo_id=repo_id, local_files_only=False)
        print(f"Cached at: {local_path}")
        paths[repo_id] = local_path

    print("\nSummary:")
    for repo_id, path in paths.items():
        print(f"  {repo_id}: {path}")


if __name__ == "__main__":
    main()
