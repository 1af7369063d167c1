from __future__ import annotations

import traceback
from typing import Any, List, Optional

import pandas as pd
import streamlit as st

from surveytab.config import APP_NAME, APP_VERSION, DATA_DIR, DEFAULT_DIGITS, configure_logging
from surveytab.core.data_loader import (
    DataLoaderError,
    list_data_files,
    load_survey_file,
    load_survey_upload,
)
from surveytab.core.multi import MultiChoiceError, cross_multi_table, multi_split, multi_table
from surveytab.core.tables import TABLE_TYPES, TableError, tabs
from surveytab.core.weighted import WeightedStatsError, wtd_mean, wtd_var

NO_SELECTION = "(none)"


def _normalize_text(x: Any) -> str:
    if x is None:
        return ""
    try:
        if pd.isna(x):
            return ""
    except (TypeError, ValueError):
        pass
    s = str(x).replace("\u00A0", " ").strip()
    if s.lower() in {"nan", "none", "null"}:
        return ""
    return s


def _parse_exclude(text: str) -> Optional[List[str]]:
    values = [_normalize_text(p) for p in text.split(",")]
    values = [v for v in values if v]
    return values or None


def _numeric_columns(df: pd.DataFrame) -> List[str]:
    return [c for c in df.columns if pd.api.types.is_numeric_dtype(df[c])]


def _optional_select(label: str, options: List[str], key: str) -> Optional[str]:
    choice = st.selectbox(label, options=[NO_SELECTION] + options, key=key)
    return None if choice == NO_SELECTION else choice


def _render_data_source() -> Optional[pd.DataFrame]:
    st.subheader("Survey data")
    uploaded = st.file_uploader("Upload a respondent-level extract (CSV or Excel)", type=["csv", "xlsx", "xls"])

    try:
        if uploaded is not None:
            return load_survey_upload(uploaded, uploaded.name)

        files = list_data_files()
        if not files:
            st.info(f"No survey files found under {DATA_DIR}. Upload a file to begin.")
            return None

        chosen = st.selectbox("Or pick a local file", options=files, format_func=lambda p: p.name)
        return load_survey_file(chosen)

    except DataLoaderError as err:
        st.error(f"Could not load survey data: {err}")
        return None


def _render_crosstab(df: pd.DataFrame) -> None:
    with st.expander("Weighted cross-tabulation", expanded=True):
        columns = [str(c) for c in df.columns]

        col1, col2 = st.columns(2)
        with col1:
            x = st.selectbox("Row variable (x)", options=columns, key="tabs_x")
            y = st.multiselect("Column variables (y)", options=[c for c in columns if c != x], key="tabs_y")
            weight = _optional_select("Weight", _numeric_columns(df), key="tabs_weight")
        with col2:
            table_type = st.radio("Table type", options=list(TABLE_TYPES), horizontal=True, key="tabs_type")
            show_pct = st.checkbox("Show % sign", value=False, key="tabs_pct")
            normwt = st.checkbox("Normalize weights", value=False, key="tabs_normwt")
            na_show = st.checkbox("Show missing values", value=False, key="tabs_na_show")
            digits = st.number_input("Digits", min_value=0, max_value=6, value=DEFAULT_DIGITS, key="tabs_digits")
            exclude_text = st.text_input("Exclude values (comma-separated)", value="", key="tabs_exclude")

        try:
            result = tabs(
                df,
                x=x,
                y=y,
                type=table_type,
                percent=show_pct,
                weight=weight,
                normwt=normwt,
                na_show=na_show,
                exclude=_parse_exclude(exclude_text),
                digits=int(digits),
            )
            st.dataframe(result.format(), use_container_width=True)
        except TableError as err:
            st.error(f"Cross-tabulation failed: {err}")
        except Exception as e:
            st.error("Unexpected error while building the cross-tabulation.")
            st.code(repr(e))
            st.text_area("Traceback", value=traceback.format_exc(), height=220)


def _render_multi_choice(df: pd.DataFrame) -> None:
    with st.expander("Multiple-choice question", expanded=False):
        columns = [str(c) for c in df.columns]

        col1, col2 = st.columns(2)
        with col1:
            var = st.selectbox("Delimited answer column", options=columns, key="multi_var")
            split_char = st.text_input("Separator", value="/", key="multi_sep")
        with col2:
            crossvar = _optional_select("Cross with", [c for c in columns if c != var], key="multi_cross")
            weight = _optional_select("Weight", _numeric_columns(df), key="multi_weight")

        try:
            indicators = multi_split(df[var], split_char=split_char)
            w = df[weight] if weight is not None else None
            if crossvar is None:
                table = multi_table(indicators, weights=w)
            else:
                table = cross_multi_table(indicators, df[crossvar], weights=w)
            st.dataframe(table, use_container_width=True)

            with st.expander("Indicator columns", expanded=False):
                st.dataframe(indicators, use_container_width=True)
        except MultiChoiceError as err:
            st.error(f"Multiple-choice table failed: {err}")
        except Exception as e:
            st.error("Unexpected error while building the multiple-choice table.")
            st.code(repr(e))
            st.text_area("Traceback", value=traceback.format_exc(), height=220)


def _render_weighted_summary(df: pd.DataFrame) -> None:
    with st.expander("Weighted mean / variance", expanded=False):
        numeric = _numeric_columns(df)
        if not numeric:
            st.info("No numeric columns in this extract.")
            return

        col1, col2 = st.columns(2)
        with col1:
            var = st.selectbox("Numeric variable", options=numeric, key="stats_var")
        with col2:
            weight = _optional_select("Weight", [c for c in numeric if c != var], key="stats_weight")
            normwt = st.checkbox("Normalize weights (variance)", value=False, key="stats_normwt")

        try:
            w = df[weight] if weight is not None else None
            mean = wtd_mean(df[var], weights=w)
            var_ = wtd_var(df[var], weights=w, normwt=normwt)
            st.write(f"Mean: {mean:.4f}")
            st.write(f"Variance: {var_:.4f}")
        except WeightedStatsError as err:
            st.error(f"Weighted statistics failed: {err}")


def run_app() -> None:
    configure_logging()
    st.set_page_config(page_title=APP_NAME, page_icon="📊", layout="wide")
    st.title(APP_NAME)
    st.caption(f"Version {APP_VERSION}")

    df = _render_data_source()
    if df is None or df.empty:
        return

    st.write(f"{df.shape[0]} rows × {df.shape[1]} columns")

    _render_crosstab(df)
    _render_multi_choice(df)
    _render_weighted_summary(df)
