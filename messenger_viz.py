"""Charts for the CSV files written by messenger_summary.py."""

from __future__ import annotations

import os
import sys

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

DEFAULT_ANALYTICS_DIR = "messenger_analytics"


def plot_word_frequency(csv_path: str, output_path: str, top: int = 25) -> bool:
    """Draw a horizontal bar chart of the most frequent words."""
    df = pd.read_csv(csv_path, keep_default_na=False)
    df = df.sort_values("count", ascending=False, kind="stable").head(top)
    if df.empty:
        return False

    plt.figure(figsize=(12, max(4, len(df) * 0.35)))
    sns.barplot(data=df, x="count", y="word", color="skyblue")
    plt.title(f"Top {len(df)} Words", fontsize=14, pad=20)
    plt.xlabel("Occurrences", fontsize=12)
    plt.ylabel("")
    plt.grid(True, axis="x", alpha=0.3)
    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close()
    return True


def plot_user_activity(csv_path: str, output_path: str, top: int = 15) -> bool:
    """Draw messages and words per user side by side."""
    df = pd.read_csv(csv_path, keep_default_na=False)
    df = df.sort_values("messages", ascending=False, kind="stable").head(top)
    if df.empty:
        return False

    fig, axes = plt.subplots(1, 2, figsize=(15, max(4, len(df) * 0.4)), sharey=True)
    sns.barplot(data=df, x="messages", y="sender", color="lightcoral", ax=axes[0])
    axes[0].set_title("Messages Sent", fontsize=12)
    axes[0].set_ylabel("")
    sns.barplot(data=df, x="words", y="sender", color="lightgreen", ax=axes[1])
    axes[1].set_title("Words Written", fontsize=12)
    axes[1].set_ylabel("")
    for ax in axes:
        ax.grid(True, axis="x", alpha=0.3)
    fig.suptitle("Activity per User", fontsize=14)
    fig.tight_layout()
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return True


def plot_reply_gaps(csv_path: str, output_path: str, top: int = 15) -> bool:
    """Draw the average reply gap (in hours) of the largest threads."""
    df = pd.read_csv(csv_path)
    df = df.dropna(subset=["avg_reply_gap_seconds"])
    df = df.sort_values("message_count", ascending=False, kind="stable").head(top)
    if df.empty:
        return False
    df["avg_reply_gap_hours"] = df["avg_reply_gap_seconds"] / 3600

    plt.figure(figsize=(12, max(4, len(df) * 0.4)))
    sns.barplot(data=df, x="avg_reply_gap_hours", y="participants", color="plum")
    plt.title("Average Time Between Replies (largest threads)", fontsize=14, pad=20)
    plt.xlabel("Hours", fontsize=12)
    plt.ylabel("")
    plt.grid(True, axis="x", alpha=0.3)
    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close()
    return True


def main(analytics_dir: str = DEFAULT_ANALYTICS_DIR) -> list[str]:
    """Render every chart into *analytics_dir* and return the written paths."""
    written = []
    charts = [
        ("word_frequency.csv", "word_frequency.png", plot_word_frequency),
        ("user_activity.csv", "user_activity.png", plot_user_activity),
        ("thread_summaries.csv", "reply_gaps.png", plot_reply_gaps),
    ]
    for csv_name, png_name, plot in charts:
        csv_path = os.path.join(analytics_dir, csv_name)
        if not os.path.exists(csv_path):
            print(f"Skipping {png_name}: {csv_path} not found")
            continue
        output_path = os.path.join(analytics_dir, png_name)
        if plot(csv_path, output_path):
            written.append(output_path)
        else:
            print(f"Skipping {png_name}: no data in {csv_path}")
    return written


if __name__ == "__main__":
    directory = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_ANALYTICS_DIR
    paths = main(directory)
    print(f"Visualizations have been saved in the {directory} directory: {', '.join(paths)}")
