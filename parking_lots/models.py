from django.db import models


class ParkingLot(models.Model):
    name = models.CharField(max_length=255)
    rows = models.PositiveIntegerField()
    cols = models.PositiveIntegerField()
    capacity = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    def aisle_coords(self):
        return {(cell.row, cell.col) for cell in self.aisles.all()}


class AisleCell(models.Model):
    parking_lot = models.ForeignKey(ParkingLot, on_delete=models.CASCADE, related_name='aisles')
    row = models.PositiveIntegerField()
    col = models.PositiveIntegerField()

    class Meta:
        unique_together = ('parking_lot', 'row', 'col')
        ordering = ['row', 'col']

    def __str__(self):
        return f"{self.parking_lot.name} aisle ({self.row}, {self.col})"


class Spot(models.Model):
    STATUS_AVAILABLE = 'available'
    STATUS_OCCUPIED = 'occupied'
    STATUS_RESERVED = 'reserved'
    STATUS_DISABLED = 'disabled'
    STATUS_CHOICES = [
        (STATUS_AVAILABLE, 'Available'),
        (STATUS_OCCUPIED, 'Occupied'),
        (STATUS_RESERVED, 'Reserved'),
        (STATUS_DISABLED, 'Disabled'),
    ]

    parking_lot = models.ForeignKey(ParkingLot, on_delete=models.CASCADE, related_name='spots')
    label = models.CharField(max_length=16)
    # Null once the spot is retired by a layout change
    row = models.PositiveIntegerField(null=True, blank=True)
    col = models.PositiveIntegerField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_AVAILABLE)
    is_retired = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('parking_lot', 'label')
        ordering = ['row', 'col', 'label']

    def __str__(self):
        return f"{self.parking_lot.name} - {self.label}"

    @property
    def coord(self):
        if self.row is None or self.col is None:
            return None
        return (self.row, self.col)
