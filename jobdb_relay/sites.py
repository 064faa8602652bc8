"""
Site registry - static per-source descriptors (URLs and structural locators)
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class LoginLocators(_Frozen):
    user: str
    password: str
    button: str
    captcha: str = "input#siteguard_captcha"
    captcha_image: str = 'img[src*="siteguard_captcha_img"]'
    # Interstitial "continue to login" control, matched by href or text
    gateway_href: Optional[str] = None
    gateway_text: Optional[str] = None


class SearchLocators(_Frozen):
    search_box: str
    keyword: Optional[str] = None
    location: Optional[str] = None
    job_category: Optional[str] = None


class ListingLocators(_Frozen):
    item: str
    title: str
    company: str = ""
    location: str = ""
    salary: str = ""
    date: str = ""


class SiteConfig(_Frozen):
    key: str
    url: str
    login_url: str
    login: LoginLocators
    search: SearchLocators
    listing: ListingLocators


GENERIC_SEARCH_BOX = ", ".join([
    'input[placeholder*="ID、求人名"]',
    'input[placeholder*="仕事内容"]',
    'input[placeholder*="キーワード"]',
    'input[placeholder*="フリーワード"]',
    'input.search-input',
    '[class*="search"] input',
    'input[placeholder*="例）"]',
])


SITE_CONFIGS: Dict[str, SiteConfig] = {
    "careerbank": SiteConfig(
        key="careerbank",
        url="https://careerbank-jobsearch.com/jobsearch/",
        login_url="https://careerbank-jobsearch.com/wp-login.php",
        login=LoginLocators(
            user="input#user_login",
            password="input#user_pass",
            button="input#wp-submit",
            captcha="input#siteguard_captcha",
        ),
        search=SearchLocators(
            search_box='input#feas_1_0, input[name="s"]',
            location="select#feas_1_2",
            job_category='input[name="c[]"]',
        ),
        listing=ListingLocators(
            item=".panel.panel-default, .feas_job_list_item",
            title=".job_detail_h3 a, .feas_job_title a",
            company=".job_detail_td, .feas_job_company",
            location=".job_detail_td, .feas_job_location",
            salary=".job_detail_td, .feas_job_salary",
            date=".feas_job_date",
        ),
    ),
    "jobmiru": SiteConfig(
        key="jobmiru",
        url="https://rightjob.app.jobmiru.cloud/p/jobs",
        login_url="https://rightjob.app.jobmiru.cloud/auth/signin",
        login=LoginLocators(
            user='input[name="email"]',
            password='input[name="password"]',
            button='button[type="submit"]',
            gateway_href="/auth/redirect",
            gateway_text="ログインする",
        ),
        search=SearchLocators(
            search_box=GENERIC_SEARCH_BOX,
            keyword='input[placeholder*="リモートワーク"]',
            location='input[data-dd-action-name="click_search_field_location"], input[placeholder*="東京"]',
            job_category='input[data-dd-action-name="click_search_field_name"], input[placeholder*="セールス"]',
        ),
        listing=ListingLocators(
            item="tr.grid, tbody tr",
            title="td:nth-child(1) a",
            company="td:nth-child(1) .text-gray-600",
            location="td:nth-child(4)",
            salary="td:nth-child(3)",
        ),
    ),
    "jobins": SiteConfig(
        key="jobins",
        url="https://jobins.jp/agent/",
        login_url="https://jobins.jp/agent/login",
        login=LoginLocators(
            user="#email",
            password="#password",
            button="#login-button-submit",
        ),
        search=SearchLocators(search_box=GENERIC_SEARCH_BOX),
        listing=ListingLocators(
            item='[class*="jb-shadow"], [class*="jb-border"], .job-card',
            title='h4, [class*="jb-text-agent-secondary"]',
            company='[class*="jb-text-slate-600"]',
            location=".job-location",
            salary=".job-salary",
        ),
    ),
}


def get_site(key: str) -> SiteConfig:
    """Look up a source descriptor. Raises KeyError for unknown sources."""
    return SITE_CONFIGS[key]
