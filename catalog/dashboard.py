# catalog/dashboard.py

import os
import json
import streamlit as st
import requests
import pandas as pd
from typing import Dict, List, Optional
from catalog.logger import configure_logging, get_logger

configure_logging()

# Create logger object
log = get_logger(__name__)

API_URL = os.getenv("CATALOG_API_URL", "http://127.0.0.1:8000")

# Product columns shown in the table, in order
TABLE_COLUMNS = ["id", "name", "category", "brand", "model", "color", "price", "currency", "stock", "sku"]


class ApiError(Exception):
	"""Non 2xx answer from the catalog API"""
	def __init__(self, status_code: int, detail: str):
		self.status_code = status_code
		self.detail = detail
		super().__init__(f"HTTP {status_code}: {detail}")


def auth_headers(token: str) -> Dict[str, str]:
	return {"Authorization": f"Bearer {token}"} if token else {}


def build_list_params(page: int, limit: int, name: str = "", category: str = "", min_price: float = 0.0, max_price: float = 0.0) -> Dict[str, object]:
	"""
	Query parameters for GET /products. Empty text and zero prices mean 'no filter'.
	"""
	params = {"page": page, "limit": limit}
	if name and name.strip():
		params["name"] = name.strip()
	if category and category.strip():
		params["category"] = category.strip()
	if min_price:
		params["minPrice"] = min_price
	if max_price:
		params["maxPrice"] = max_price
	return params


def call_api(method: str, path: str, token: str, params: Optional[Dict] = None, timeout: float = 30):
	"""Call the catalog API and return the decoded JSON body (None for 204)."""
	url = f"{API_URL}{path}"
	log.info(f"Calling API {method} {url} params={params}")
	response = requests.request(method, url, params=params, headers=auth_headers(token), timeout=timeout)

	if response.status_code >= 400:
		try:
			detail = response.json().get("detail", response.text)
		except ValueError:
			detail = response.text
		log.error(f"API returned {response.status_code} for {method} {path}: {detail}")
		raise ApiError(response.status_code, str(detail))

	if response.status_code == 204:
		return None
	return response.json()


def products_frame(products: List[Dict]) -> pd.DataFrame:
	frame = pd.DataFrame(products)
	if frame.empty:
		return pd.DataFrame(columns=TABLE_COLUMNS)
	return frame[[column for column in TABLE_COLUMNS if column in frame.columns]]


def main():
	# Page settings
	st.set_page_config(
		page_title="Product Catalog",
		page_icon="🛒",
		layout="wide"
	)

	st.title("Product Catalog")

	initialize_sessions()

	# --- Sidebar: token and filters
	st.sidebar.text_input("Bearer token", type="password", key="token")
	st.sidebar.header("🔍 Filter")
	filter_parameters()

	with st.sidebar:
		st.button("Reset Filter Parameters", on_click=reset_filter_parameters, type="primary")

	products_tab, reports_tab = st.tabs(["Products", "Reports"])

	with products_tab:
		run_products()

	with reports_tab:
		run_reports()


def run_products():
	"""Product list with pagination, soft delete and manual sync."""
	token = st.session_state.token

	col1, col2, col3 = st.columns([1, 1, 2])
	with col1:
		st.number_input("Page", min_value=1, step=1, key="page")
	with col2:
		st.selectbox("Per page", [5, 10, 20, 50, 100], key="limit")
	with col3:
		if st.button("🔄 Sync from Contentful"):
			with st.spinner("Syncing..."):
				try:
					summary = call_api("POST", "/products/sync", token)
					st.success(f"Created {summary['created']}, updated {summary['updated']}, unchanged {summary['unchanged']}, failed {summary['failed']}")
					for error in summary.get("errors", []):
						st.warning(error)
				except ApiError as e:
					st.error(f"Sync failed: {e.detail}")
				except requests.exceptions.RequestException as e:
					st.error("Unable to connect to API.")
					log.exception(f"Sync request failed: {e}")

	params = build_list_params(
		page=st.session_state.page,
		limit=st.session_state.limit,
		name=st.session_state.name,
		category=st.session_state.category,
		min_price=st.session_state.min_price,
		max_price=st.session_state.max_price,
	)

	try:
		result = call_api("GET", "/products", token, params=params)
	except ApiError as e:
		if e.status_code == 401:
			st.info("Enter a bearer token in the sidebar to browse the catalog.")
		else:
			st.error(f"Error loading products: {e.detail}")
		return
	except requests.exceptions.RequestException as e:
		st.error("Unable to connect to API.")
		log.exception(f"Product list request failed: {e}")
		return

	with st.sidebar:
		st.markdown("---")
		st.metric("Matching products", result["total"])
		st.metric("Pages", result["totalPages"])

	if not result["data"]:
		st.warning("No products match the current filter criteria")
		return

	st.caption(f"Page {result['page']} of {max(result['totalPages'], 1)}")
	frame = products_frame(result["data"])
	st.dataframe(frame, use_container_width=True, hide_index=True)

	st.download_button(
		label = "📥 Download Page as CSV File",
		data = frame.to_csv(index=False).encode("utf-8"),
		file_name = f"products_page_{result['page']}.csv",
		mime = "text/csv"
	)

	# Soft delete
	with st.expander("Delete a product"):
		options = {f"{p['id']} - {p['name']}": p["id"] for p in result["data"]}
		choice = st.selectbox("Product", list(options.keys()), key="delete_choice")
		if st.button("Delete", type="secondary"):
			try:
				call_api("DELETE", f"/products/{options[choice]}", token)
				st.success(f"Deleted product {options[choice]}")
				log.info(f"Product {options[choice]} deleted from dashboard")
				st.rerun()
			except ApiError as e:
				st.error(f"Delete failed: {e.detail}")


def run_reports():
	"""Deleted / non-deleted / category reports."""
	token = st.session_state.token

	col1, col2 = st.columns(2)
	with col1:
		start_date = st.date_input("Created from", value=None, key="start_date")
	with col2:
		end_date = st.date_input("Created until", value=None, key="end_date")

	params = {}
	if start_date:
		params["start_date"] = start_date.isoformat()
	if end_date:
		params["end_date"] = end_date.isoformat()

	try:
		deleted = call_api("GET", "/reports/deleted", token)
		non_deleted = call_api("GET", "/reports/non-deleted", token, params=params)
		categories = call_api("GET", "/reports/categories", token)
	except ApiError as e:
		st.error(f"Error loading reports: {e.detail}")
		return
	except requests.exceptions.RequestException as e:
		st.error("Unable to connect to API.")
		log.exception(f"Report request failed: {e}")
		return

	m1, m2, m3, m4 = st.columns(4)
	m1.metric("Products", deleted["total"])
	m2.metric("Deleted", f"{deleted['percentage']:.2f}%")
	m3.metric("With price", f"{non_deleted['with_price_percentage']:.2f}%")
	m4.metric("Without price", f"{non_deleted['without_price_percentage']:.2f}%")

	st.subheader("By category")
	st.dataframe(pd.DataFrame(categories), use_container_width=True, hide_index=True)

	st.download_button(
		label = "📥 Download Reports as JSON File",
		data = json.dumps({"deleted": deleted, "non_deleted": non_deleted, "categories": categories}, indent=2, ensure_ascii=False),
		file_name = "reports.json",
		mime = "application/json"
	)


def filter_parameters():
	"""Display filter parameter controls in sidebar."""
	st.sidebar.text_input("Name contains", key="name")
	st.sidebar.text_input("Category", key="category")
	st.sidebar.number_input("Minimum Price ($)", min_value=0.0, step=1.0, key="min_price")
	st.sidebar.number_input("Maximum Price ($)", min_value=0.0, step=1.0, key="max_price")


def initialize_sessions():
	"""Initialize session state variables."""
	defaults = {
		"token": "",
		"name": "",
		"category": "",
		"min_price": 0.0,
		"max_price": 0.0,
		"page": 1,
		"limit": 5,
	}
	for key, value in defaults.items():
		if key not in st.session_state:
			st.session_state[key] = value
			log.debug(f"Session state '{key}' initialized.")


def reset_filter_parameters():
	st.session_state.name = ""
	st.session_state.category = ""
	st.session_state.min_price = 0.0
	st.session_state.max_price = 0.0
	st.session_state.page = 1

if __name__ == "__main__":
	main()
