#!/usr/bin/env python3
"""
Streamlit Web Interface for Snap Export Extractor
Upload a Snapchat memories export page and download snap_export.csv.
"""

# Standard library imports
import logging
import time
from typing import Any, Dict, List, Optional

# Third-party imports
import streamlit as st

# Local imports
from snap_extractor import (
    CONTENT_TYPE,
    OUTPUT_FILENAME,
    SnapExtractor,
    SnapExtractorError,
    parse_document,
)

# Configure logging (after imports)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

# Page configuration
st.set_page_config(
    page_title="Snap Export Extractor",
    page_icon="📸",
    layout="wide",
)


class StreamlitDownloadSink:
    """Output sink that hands the CSV to the browser as a download"""

    def __init__(self, label: str = "📄 Download snap_export.csv"):
        self.label = label

    def save(self, filename: str, content_type: str, data: bytes) -> Optional[str]:
        st.download_button(
            label=self.label,
            data=data,
            file_name=filename,
            mime=content_type,
            help="Quoted CSV with one download link per memory",
            use_container_width=True
        )
        return None


def setup_session_state():
    """Initialize session state variables"""
    if 'extraction_complete' not in st.session_state:
        st.session_state.extraction_complete = False
    if 'records' not in st.session_state:
        st.session_state.records = []
    if 'error_log' not in st.session_state:
        st.session_state.error_log = []
    if 'csv_content' not in st.session_state:
        st.session_state.csv_content = None
    if 'stats' not in st.session_state:
        st.session_state.stats = {}


def display_header():
    """Display the main header and instructions"""
    st.title("📸 Snap Export Extractor")
    st.markdown("**Turn your Snapchat memories export into a CSV of download links**")

    with st.expander("📋 How to Use This Tool", expanded=False):
        st.markdown("""
        ### Instructions:
        1. **Upload** the `memories_history.html` page from your Snapchat data export
        2. **Click Extract** to parse every row of the memories table
        3. **Download** `snap_export.csv` and feed it to your batch downloader

        Every row is accepted automatically here. Use the command line tool
        (`snap-extract`) to review rows one at a time.
        """)


def process_document(markup: bytes):
    """Run the extraction in auto mode and keep the results in session state"""
    status_text = st.empty()
    log_lines: List[Dict[str, Any]] = []

    def logging_callback(level: str, message: str):
        if level == "error":
            log_lines.append({'level': level, 'message': message})
        elif message.startswith("Progress:"):
            status_text.info(f"⏳ {message}")

    extractor = SnapExtractor(auto=True, callback=logging_callback, verbose=False)
    start_time = time.time()

    try:
        result = extractor.extract(parse_document(markup))
    except SnapExtractorError as e:
        st.error(f"❌ {e}")
        st.session_state.extraction_complete = False
        return

    elapsed = time.time() - start_time
    st.session_state.records = [record.as_row() for record in result.records]
    st.session_state.error_log = [
        {'row': failure.index, 'reason': failure.reason.value, 'raw': failure.raw}
        for failure in result.failures
    ]
    st.session_state.csv_content = result.csv_content
    st.session_state.stats = {
        'total': result.state.total_rows,
        'accepted': result.state.successes,
        'failed': result.state.failure_count,
    }
    st.session_state.extraction_complete = True
    status_text.success(
        f"✅ **Complete!** {result.state.successes} accepted, "
        f"{result.state.failure_count} failed ({elapsed:.1f}s)"
    )


def display_results():
    """Display extraction results and statistics"""
    if not st.session_state.extraction_complete:
        return

    st.markdown("### 📊 Extraction Results")
    stats = st.session_state.stats

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Total rows", stats.get('total', 0))
    with col2:
        st.metric("Accepted", stats.get('accepted', 0))
    with col3:
        st.metric("Failed", stats.get('failed', 0))

    if st.session_state.records:
        st.dataframe(
            [
                dict(zip(["timestamp_utc", "format", "latitude", "longitude", "download_url"], row))
                for row in st.session_state.records[:200]
            ],
            use_container_width=True
        )
        if len(st.session_state.records) > 200:
            st.caption(f"... and {len(st.session_state.records) - 200} more rows")

    if st.session_state.error_log:
        st.subheader("❌ Failed Rows")
        with st.expander(f"View {len(st.session_state.error_log)} failed rows"):
            for error in st.session_state.error_log:
                st.markdown(f"**Row {error['row']}**: {error['reason']}")
                st.code(error['raw'], language="html")


def provide_downloads():
    """Provide the download button for snap_export.csv"""
    if not st.session_state.extraction_complete or st.session_state.csv_content is None:
        return

    st.markdown("### 💾 Download Results")
    StreamlitDownloadSink().save(
        OUTPUT_FILENAME,
        CONTENT_TYPE,
        st.session_state.csv_content.encode('utf-8'),
    )


def main():
    """Main application function"""
    setup_session_state()
    display_header()

    uploaded = st.file_uploader("Memories export page", type=["html", "htm"])

    start_extraction = st.button(
        "🚀 EXTRACT DOWNLOAD LINKS",
        type="primary",
        use_container_width=True,
        disabled=uploaded is None,
    )

    if start_extraction and uploaded is not None:
        with st.spinner("Parsing memories table..."):
            process_document(uploaded.getvalue())

    display_results()
    provide_downloads()


if __name__ == "__main__":
    main()
