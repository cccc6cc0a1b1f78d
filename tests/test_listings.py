"""Tests for jobs and products."""

from decimal import Decimal

import pytest

from social import listings, orgs
from social.exceptions import NotAllowed, ValidationFailed
from social.models import Job, OrgMember, Product

pytestmark = pytest.mark.django_db


def job_data(org, **extra):
    data = {
        "org_id": str(org.pk),
        "title": "Quantum Software Engineer",
        "company_name": "Qubit Labs",
        "location": "Copenhagen",
        "employment_type": "Full-time",
        "remote_type": "Hybrid",
        "keywords": "qiskit, python",
    }
    data.update(extra)
    return data


def product_data(org, **extra):
    data = {
        "org_id": str(org.pk),
        "name": "Dilution Fridge X1",
        "company_name": "Qubit Labs",
        "category": "Cryogenics",
        "price_type": "fixed",
        "price_value": "125000.50",
        "in_stock": "yes",
        "stock_quantity": "3",
    }
    data.update(extra)
    return data


class TestJobs:
    """Tests for job listings."""

    def test_owner_posts_job(self, alice, company):
        """Test the owner publishes under the organization."""
        job = listings.create_job(alice, job_data(company))
        assert job.org == company
        assert job.owner == alice
        assert job.is_active

    def test_admin_cannot_post_job(self, alice, bob, company):
        """Test admins are below the listing threshold."""
        orgs.add_member(alice, company, bob, role=OrgMember.ROLE_ADMIN)
        with pytest.raises(NotAllowed, match="owner/co-owner"):
            listings.create_job(bob, job_data(company))

    def test_co_owner_posts_job(self, alice, bob, company):
        """Test co-owners may publish."""
        orgs.add_member(alice, company, bob, role=OrgMember.ROLE_CO_OWNER)
        assert listings.create_job(bob, job_data(company)).owner == bob

    def test_inactive_org_rejected(self, alice, company):
        """Test listings cannot target a deactivated organization."""
        orgs.deactivate(alice, company)
        with pytest.raises(NotAllowed):
            listings.create_job(alice, job_data(company))

    def test_required_fields(self, alice, company):
        """Test title and company are required."""
        with pytest.raises(ValidationFailed, match="Title and company name are required."):
            listings.create_job(alice, job_data(company, title=""))

    def test_update_and_delete(self, alice, bob, company):
        """Test only the author edits and deletes."""
        job = listings.create_job(alice, job_data(company))
        with pytest.raises(NotAllowed):
            listings.update_job(bob, job, job_data(company))
        listings.update_job(alice, job, job_data(company, title="Senior Engineer", is_active="0"))
        job.refresh_from_db()
        assert job.title == "Senior Engineer"
        assert not job.is_active

        with pytest.raises(NotAllowed):
            listings.delete_job(bob, job)
        listings.delete_job(alice, job)
        assert not Job.objects.exists()

    def test_search(self, alice, company):
        """Test filters and free-text search."""
        listings.create_job(alice, job_data(company))
        listings.create_job(alice, job_data(company, title="PhD in ion traps", employment_type="PhD",
                                             remote_type="On-site", keywords="ions"))
        assert listings.search_jobs().count() == 2
        assert listings.search_jobs(employment_type="PhD").count() == 1
        assert listings.search_jobs(remote_type="Remote").count() == 0
        assert listings.search_jobs("qiskit").get().title == "Quantum Software Engineer"
        assert listings.search_jobs(employment_type=listings.ALL, remote_type=listings.ALL).count() == 2

    def test_saved_jobs(self, alice, bob, company):
        """Test saving and unsaving."""
        job = listings.create_job(alice, job_data(company))
        assert listings.toggle_saved_job(bob, job) is True
        assert listings.saved_job_ids(bob) == {job.pk}
        assert list(listings.saved_jobs(bob)) == [job]
        assert listings.toggle_saved_job(bob, job) is False
        assert listings.saved_job_ids(bob) == set()


class TestProducts:
    """Tests for product listings."""

    def test_clean_product(self):
        """Test price and stock normalization."""
        cleaned = listings.clean_product({"name": "Laser", "price_type": "fixed", "price_value": "10.5"})
        assert cleaned["price_value"] == Decimal("10.5")
        assert cleaned["in_stock"] is True
        assert cleaned["stock_quantity"] is None

        contact = listings.clean_product({"name": "Laser", "price_type": "contact", "price_value": "10"})
        assert contact["price_type"] == Product.PRICE_CONTACT
        assert contact["price_value"] is None

        out = listings.clean_product({"name": "Laser", "in_stock": "no", "stock_quantity": "4"})
        assert out["in_stock"] is False
        assert out["stock_quantity"] is None

    def test_bad_price(self):
        """Test non-numeric prices are rejected."""
        with pytest.raises(ValidationFailed, match="Price must be a number."):
            listings.clean_product({"name": "Laser", "price_type": "fixed", "price_value": "cheap"})

    @pytest.mark.parametrize("raw, message", [
        ("NaN", "Price must be a number."),
        ("Infinity", "Price must be a number."),
        ("-5", "Price cannot be negative."),
        ("1e20", "Price is too large."),
        ("10000000000", "Price is too large."),
    ])
    def test_price_out_of_range(self, raw, message):
        """Test prices the price column cannot store are rejected."""
        with pytest.raises(ValidationFailed, match=message):
            listings.clean_product({"name": "Laser", "price_type": "fixed", "price_value": raw})

    def test_price_rounded_to_cents(self):
        """Test prices keep two decimals and the largest storable value passes."""
        cleaned = listings.clean_product({"name": "Laser", "price_type": "fixed", "price_value": "9999999999.994"})
        assert cleaned["price_value"] == Decimal("9999999999.99")

    def test_name_required(self):
        """Test products need a name."""
        with pytest.raises(ValidationFailed, match="Product name is required."):
            listings.clean_product({"name": ""})

    def test_create_and_search(self, alice, company):
        """Test listing a product and finding it."""
        product = listings.create_product(alice, product_data(company))
        assert product.price_value == Decimal("125000.50")
        assert product.stock_quantity == 3
        assert product.images == []
        assert list(listings.search_products("fridge")) == [product]
        assert listings.search_products(category="Photonics").count() == 0
        assert list(listings.search_products(org=company)) == [product]

    def test_permissions(self, alice, bob, company):
        """Test outsiders cannot list or edit."""
        with pytest.raises(NotAllowed):
            listings.create_product(bob, product_data(company))
        product = listings.create_product(alice, product_data(company))
        with pytest.raises(NotAllowed):
            listings.update_product(bob, product, product_data(company))
        with pytest.raises(NotAllowed):
            listings.delete_product(bob, product)

    def test_saved_products(self, alice, bob, company):
        """Test saving and unsaving."""
        product = listings.create_product(alice, product_data(company))
        assert listings.toggle_saved_product(bob, product) is True
        assert list(listings.saved_products(bob)) == [product]
        assert listings.toggle_saved_product(bob, product) is False


class TestListingViews:
    """Tests for the job and product pages."""

    def test_job_pages(self, client, alice, company):
        """Test list and detail render for visitors."""
        job = listings.create_job(alice, job_data(company))
        assert b"Quantum Software Engineer" in client.get("/jobs").content
        assert client.get(f"/jobs/{job.pk}").status_code == 200

    def test_new_job_form(self, alice_client, company):
        """Test publishing a job through the form."""
        response = alice_client.post("/jobs/new", job_data(company))
        job = Job.objects.get()
        assert response.status_code == 302
        assert response.url == f"/jobs/{job.pk}"

    def test_new_job_form_error(self, client, bob, company):
        """Test a refused job re-renders the form with the message."""
        client.force_login(bob)
        response = client.post("/jobs/new", job_data(company))
        assert response.status_code == 200
        assert b"Only the organization owner/co-owner can post this job." in response.content

    def test_product_pages(self, client, alice, company):
        """Test list, detail and saved products render."""
        product = listings.create_product(alice, product_data(company))
        assert b"Dilution Fridge X1" in client.get("/products").content
        assert client.get(f"/products/{product.pk}").status_code == 200
        client.force_login(alice)
        client.post(f"/products/{product.pk}/save")
        assert b"Dilution Fridge X1" in client.get("/dashboard/saved-products").content

    def test_delete_job_endpoint(self, client, alice, bob, company):
        """Test deleting someone else's job is forbidden."""
        job = listings.create_job(alice, job_data(company))
        client.force_login(bob)
        response = client.post(f"/jobs/{job.pk}/delete")
        assert response.status_code == 403
