"""Streamlit viewer (launch with `streamlit run main.py`)."""
